"""Student export to CSV and Excel."""

import csv
import io
from datetime import date
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from app.schemas.student import StudentFilter, StudentResponse
from app.services.student import StudentService

# (header, attribute, column width)
EXPORT_COLUMNS = [
    ("Name", "name", 25),
    ("Email", "email", 32),
    ("Phone", "phone", 16),
    ("Course Interested", "course_interested", 28),
    ("Location", "location", 18),
    ("Status", "status", 12),
    ("Citizenship Status", "citizenship_status", 22),
    ("Current Situation", "current_situation", 22),
    ("Registration Date", "registration_date", 18),
]

CSV_MEDIA_TYPE = "text/csv"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def export_row(student: StudentResponse) -> list[str]:
    """Cell values of one student in export column order."""
    values = []
    for _, attr, _ in EXPORT_COLUMNS:
        value = getattr(student, attr)
        if value is None:
            values.append("")
        elif isinstance(value, date):
            values.append(value.isoformat())
        elif hasattr(value, "value"):
            values.append(value.value)
        else:
            values.append(str(value))
    return values


def students_to_csv(students: list[StudentResponse]) -> str:
    """Serialize students to CSV text; values containing commas or quotes are quoted."""
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow([header for header, _, _ in EXPORT_COLUMNS])
    for student in students:
        writer.writerow(export_row(student))
    return output.getvalue()


def students_to_xlsx(students: list[StudentResponse]) -> bytes:
    """Serialize students to an Excel workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Students"

    # Write headers
    for col_idx, (header, _, width) in enumerate(EXPORT_COLUMNS, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = Font(bold=True)
        ws.column_dimensions[get_column_letter(col_idx)].width = width

    for row_idx, student in enumerate(students, start=2):
        for col_idx, value in enumerate(export_row(student), start=1):
            ws.cell(row=row_idx, column=col_idx, value=value)

    output = BytesIO()
    wb.save(output)
    output.seek(0)
    return output.getvalue()


def export_filename(extension: str, today: date | None = None) -> str:
    return f"students-export-{(today or date.today()).isoformat()}.{extension}"


class StudentExportService:
    """Exports every student matching a filter, ignoring the page window."""

    def __init__(self, db: Session):
        self.db = db

    def fetch(self, filters: StudentFilter | None = None) -> list[StudentResponse]:
        return StudentService(self.db).list_students(filters, offset=0, limit=None).students

    def export_csv(self, filters: StudentFilter | None = None) -> str:
        return students_to_csv(self.fetch(filters))

    def export_xlsx(self, filters: StudentFilter | None = None) -> bytes:
        return students_to_xlsx(self.fetch(filters))
