"""Import a student CSV through a running API.

Rows are created with parallel requests against POST /api/students.

Usage: python -m scripts.import_students <file.csv> [base_url]

Credentials are read from IMPORT_USERNAME and IMPORT_PASSWORD.
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from app.client.api import StudentsApiClient  # noqa: E402
from app.client.errors import ClientError  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.core.exceptions import CsvParseError  # noqa: E402

if len(sys.argv) < 2:
    print(__doc__)
    sys.exit(1)

path = Path(sys.argv[1])
base_url = sys.argv[2] if len(sys.argv) > 2 else "http://localhost:8000"

with StudentsApiClient(base_url) as client:
    try:
        client.login(os.environ["IMPORT_USERNAME"], os.environ["IMPORT_PASSWORD"])
        result = client.import_csv(path.read_text(encoding="utf-8-sig"))
    except CsvParseError as e:
        print("CSV could not be parsed:")
        for error in e.errors:
            print(f"  {error}")
        sys.exit(1)
    except ClientError as e:
        print(f"Error: {e}")
        sys.exit(1)

print(f"Imported {result.succeeded} of {result.total} students ({result.failed} failed)")
for error in result.display_errors(settings.IMPORT_ERROR_DISPLAY_LIMIT):
    print(f"  {error}")
