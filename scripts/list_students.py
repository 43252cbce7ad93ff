"""Print one page of students from a running API.

Usage: python -m scripts.list_students [base_url] [name=ana] [status=active,pending] [expand=12] ...

Filter arguments use the list's URL parameter names. Name, email and phone
matches are shown in [brackets]. Each expand=<id> prints that student's notes.

Credentials are read from IMPORT_USERNAME and IMPORT_PASSWORD.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

from app.client.api import StudentsApiClient  # noqa: E402
from app.client.errors import ClientError  # noqa: E402
from app.services.list_state import (  # noqa: E402
    InMemoryListStateStore,
    StudentListController,
    highlight_segments,
)

args = sys.argv[1:]
base_url = "http://localhost:8000"
if args and "=" not in args[0]:
    base_url = args.pop(0)

filters: dict[str, str] = {}
expand: list[int] = []
for arg in args:
    key, _, value = arg.partition("=")
    if key == "expand":
        expand.append(int(value))
    else:
        filters[key] = value


def highlighted(text: str | None, term: str) -> str:
    return "".join(f"[{segment}]" if matched else segment for segment, matched in highlight_segments(text or "", term))


controller = StudentListController(InMemoryListStateStore())
controller.mount(filters)
for student_id in expand:
    controller.toggle_row(student_id)

with StudentsApiClient(base_url) as client:
    try:
        client.login(os.environ["IMPORT_USERNAME"], os.environ["IMPORT_PASSWORD"])
        page = client.fetch_page(controller)
        notes = client.fetch_expanded_notes(controller)
    except ClientError as e:
        print(f"Error: {e}")
        sys.exit(1)

state = controller.state
print(f"Page {controller.current_page} of {controller.total_pages(page['total'])} ({page['total']} students)")
for student in page["students"]:
    print(
        f"  {student['id']:>5}  {highlighted(student['name'], state.name)}"
        f"  {highlighted(student['email'], state.email)}"
        f"  {highlighted(student['phone'], state.phone)}"
        f"  {student['status']}"
    )

for student_id, (user_notes, system_logs) in notes.items():
    print(f"\nStudent {student_id}")
    for note in user_notes:
        print(f"  {note.get('createdByName') or 'Unknown'}: {note['content']}")
    for log in system_logs:
        print(f"  * {log['content']}")
