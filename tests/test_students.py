from datetime import date

from fastapi.testclient import TestClient

from app.models import StudentNote, StudentStatus
from app.schemas.student import StudentFilter
from app.services.student import StudentService, parse_date_bound, split_multi_value


def _names(response) -> list[str]:
    return [s["name"] for s in response.json()["students"]]


def test_list_requires_auth(client: TestClient):
    """Listing students without a session is rejected"""
    response = client.get("/api/students")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_FAILED"


def test_list_students_page_and_total(client: TestClient, auth_headers, make_student):
    """The page is bounded by limit while total counts every match"""
    for i in range(5):
        make_student(name=f"Student {i}")

    response = client.get("/api/students?limit=2&offset=2", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 5
    assert _names(response) == ["Student 2", "Student 3"]


def test_list_students_wire_format(client: TestClient, auth_headers, make_student):
    """Records are serialized with camelCase keys"""
    make_student(name="Ana Ruiz", course_interested="Nursing", registration_date=date(2024, 2, 1))

    student = client.get("/api/students", headers=auth_headers).json()["students"][0]

    assert student["courseInterested"] == "Nursing"
    assert student["registrationDate"] == "2024-02-01"
    assert student["status"] == "pending"


def test_status_filter_is_or_within_field(client: TestClient, auth_headers, make_student):
    """Comma-joined status values match any of them"""
    make_student(name="A", status=StudentStatus.ACTIVE)
    make_student(name="P", status=StudentStatus.PENDING)
    make_student(name="G", status=StudentStatus.GRADUATED)

    response = client.get("/api/students?status=active,pending&limit=10", headers=auth_headers)

    assert response.json()["total"] == 2
    assert sorted(_names(response)) == ["A", "P"]


def test_filters_are_and_across_fields(client: TestClient, auth_headers, make_student):
    """Every supplied filter must hold"""
    make_student(name="Maria Garcia", location="Miami", status=StudentStatus.ACTIVE)
    make_student(name="Maria Lopez", location="Denver", status=StudentStatus.ACTIVE)
    make_student(name="John Smith", location="Miami", status=StudentStatus.ACTIVE)

    response = client.get("/api/students?name=maria&location=Miami", headers=auth_headers)

    assert _names(response) == ["Maria Garcia"]


def test_text_filters_are_case_insensitive_substrings(client: TestClient, auth_headers, make_student):
    """Name, email and phone match case-insensitive substrings"""
    make_student(name="Sarah Johnson", email="sarah.j@email.com", phone="555-100-2000")
    make_student(name="David Chen", email="dchen@email.com", phone="555-300-4000")

    assert _names(client.get("/api/students?name=JOHN", headers=auth_headers)) == ["Sarah Johnson"]
    assert _names(client.get("/api/students?email=DCHEN", headers=auth_headers)) == ["David Chen"]
    assert _names(client.get("/api/students?phone=300-4", headers=auth_headers)) == ["David Chen"]


def test_like_wildcards_are_literal(client: TestClient, auth_headers, make_student):
    """Percent and underscore in a search term are not wildcards"""
    make_student(name="100% Ready")
    make_student(name="1000 Ready")

    assert _names(client.get("/api/students?name=0%25", headers=auth_headers)) == ["100% Ready"]


def test_course_filter_membership(client: TestClient, auth_headers, make_student):
    """courseInterested matches any of the listed courses exactly"""
    make_student(name="N", course_interested="Nursing")
    make_student(name="D", course_interested="Dental Assistant")
    make_student(name="P", course_interested="Pharmacy Technician")

    response = client.get(
        "/api/students?courseInterested=Nursing,Pharmacy Technician",
        headers=auth_headers,
    )

    assert sorted(_names(response)) == ["N", "P"]


def test_blank_location_means_all(client: TestClient, auth_headers, make_student):
    """An empty location filter does not restrict the results"""
    make_student(location="Miami")
    make_student(location="Denver")

    response = client.get("/api/students?location=", headers=auth_headers)

    assert response.json()["total"] == 2


def test_registration_date_range_is_inclusive(client: TestClient, auth_headers, make_student):
    """Both date bounds are inclusive"""
    make_student(name="Before", registration_date=date(2024, 1, 31))
    make_student(name="First", registration_date=date(2024, 2, 1))
    make_student(name="Last", registration_date=date(2024, 2, 29))
    make_student(name="After", registration_date=date(2024, 3, 1))

    response = client.get(
        "/api/students?registrationDateFrom=2024-02-01&registrationDateTo=2024-02-29",
        headers=auth_headers,
    )

    assert sorted(_names(response)) == ["First", "Last"]


def test_malformed_date_bound_matches_nothing(client: TestClient, auth_headers, make_student):
    """A date bound that is not YYYY-MM-DD yields an empty page, not an error"""
    make_student()

    response = client.get("/api/students?registrationDateFrom=02/01/2024", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"students": [], "total": 0}


def test_unknown_status_matches_nothing(client: TestClient, auth_headers, make_student):
    """Status values outside the known set never match"""
    make_student(status=StudentStatus.ACTIVE)

    response = client.get("/api/students?status=archived", headers=auth_headers)

    assert response.json()["total"] == 0


def test_sort_by_column(client: TestClient, auth_headers, make_student):
    """sortColumn/sortDirection order the page, ties broken by id"""
    make_student(name="Charlie")
    make_student(name="alice")
    make_student(name="Bob")

    asc = client.get("/api/students?sortColumn=name&sortDirection=asc", headers=auth_headers)
    desc = client.get("/api/students?sortColumn=name&sortDirection=desc", headers=auth_headers)

    assert _names(asc) == sorted(_names(asc))
    assert _names(desc) == list(reversed(_names(asc)))


def test_sort_nulls_as_empty(client: TestClient, auth_headers, make_student):
    """A missing location sorts as the empty string"""
    make_student(name="Has", location="Austin")
    make_student(name="None", location=None)

    response = client.get("/api/students?sortColumn=location&sortDirection=asc", headers=auth_headers)

    assert _names(response) == ["None", "Has"]


def test_limit_bounds(client: TestClient, auth_headers):
    """limit must be between 1 and the configured maximum"""
    assert client.get("/api/students?limit=0", headers=auth_headers).status_code == 422
    assert client.get("/api/students?limit=10001", headers=auth_headers).status_code == 422
    assert client.get("/api/students?limit=10000", headers=auth_headers).status_code == 200


def test_create_student(client: TestClient, auth_headers):
    """Creating a student returns the stored record"""
    response = client.post(
        "/api/students",
        json={
            "name": "Emily Moore",
            "email": "emily.moore@email.com",
            "phone": "555-100-1000",
            "courseInterested": "Nursing",
            "status": "active",
            "registrationDate": "2024-03-05",
        },
        headers=auth_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["id"] > 0
    assert data["status"] == "active"
    assert data["registrationDate"] == "2024-03-05"
    assert data["location"] is None


def test_create_student_defaults(client: TestClient, auth_headers):
    """Status defaults to pending and registration date to today"""
    response = client.post(
        "/api/students",
        json={"name": "Lisa Brown", "email": "lisa@email.com", "phone": "555-000-1111"},
        headers=auth_headers,
    )

    data = response.json()
    assert data["status"] == "pending"
    assert data["registrationDate"] == date.today().isoformat()


def test_create_student_duplicate_email(client: TestClient, auth_headers, make_student):
    """A second student with the same email is a conflict"""
    make_student(email="taken@email.com")

    response = client.post(
        "/api/students",
        json={"name": "Copy", "email": "taken@email.com", "phone": "555"},
        headers=auth_headers,
    )

    assert response.status_code == 409
    assert response.json()["error"]["details"]["field"] == "email"


def test_create_student_validation(client: TestClient, auth_headers):
    """Invalid email and unknown status are rejected"""
    bad_email = client.post(
        "/api/students",
        json={"name": "X", "email": "not-an-email", "phone": "1"},
        headers=auth_headers,
    )
    bad_status = client.post(
        "/api/students",
        json={"name": "X", "email": "x@email.com", "phone": "1", "status": "archived"},
        headers=auth_headers,
    )

    assert bad_email.status_code == 422
    assert bad_email.json()["error"]["code"] == "VALIDATION_ERROR"
    assert bad_status.status_code == 422


def test_get_student_not_found(client: TestClient, auth_headers):
    """Unknown IDs are 404"""
    response = client.get("/api/students/999", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_update_student_partial(client: TestClient, auth_headers, make_student):
    """Only supplied fields change"""
    student = make_student(name="Old Name", location="Miami")

    response = client.put(
        f"/api/students/{student.id}",
        json={"name": "New Name"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["name"] == "New Name"
    assert response.json()["location"] == "Miami"


def test_update_student_cannot_clear_required_field(client: TestClient, auth_headers, make_student):
    """Required fields cannot be set to null"""
    student = make_student()

    response = client.put(f"/api/students/{student.id}", json={"email": None}, headers=auth_headers)

    assert response.status_code == 422


def test_update_student_email_conflict(client: TestClient, auth_headers, make_student):
    """Changing email to one already in use is a conflict"""
    make_student(email="first@email.com")
    second = make_student(email="second@email.com")

    response = client.put(
        f"/api/students/{second.id}",
        json={"email": "first@email.com"},
        headers=auth_headers,
    )

    assert response.status_code == 409


def test_update_student_not_found(client: TestClient, auth_headers):
    """Updating a missing student is 404"""
    response = client.put("/api/students/999", json={"name": "Ghost"}, headers=auth_headers)

    assert response.status_code == 404


def test_delete_student_removes_notes(client: TestClient, auth_headers, make_student, db_session):
    """Deleting a student deletes its notes too"""
    student = make_student()
    client.post(f"/api/students/{student.id}/notes", json={"content": "hello"}, headers=auth_headers)

    response = client.delete(f"/api/students/{student.id}", headers=auth_headers)

    assert response.status_code == 204
    assert client.get(f"/api/students/{student.id}", headers=auth_headers).status_code == 404
    assert db_session.query(StudentNote).count() == 0


def test_facets(client: TestClient, auth_headers, make_student):
    """Facets list distinct non-empty values"""
    make_student(course_interested="Nursing", location="Miami", status=StudentStatus.ACTIVE)
    make_student(course_interested="Nursing", location="", status=StudentStatus.PENDING)
    make_student(course_interested=None, location="Denver", status=StudentStatus.ACTIVE)

    data = client.get("/api/students/facets", headers=auth_headers).json()

    assert data["courses"] == ["Nursing"]
    assert data["locations"] == ["Denver", "Miami"]
    assert data["statuses"] == ["active", "pending"]


def test_list_students_unbounded(db_session, make_student):
    """limit=None returns every match"""
    for _ in range(4):
        make_student()

    result = StudentService(db_session).list_students(StudentFilter(), limit=None)

    assert result.total == 4
    assert len(result.students) == 4


def test_parse_date_bound():
    assert parse_date_bound("2024-02-29") == date(2024, 2, 29)
    assert parse_date_bound("2023-02-29") is None
    assert parse_date_bound("2024-2-1") is None
    assert parse_date_bound("yesterday") is None


def test_split_multi_value():
    assert split_multi_value("active, pending,,") == ["active", "pending"]
    assert split_multi_value("") == []
    assert split_multi_value(None) == []
