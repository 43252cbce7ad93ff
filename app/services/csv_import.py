"""Bulk student import from CSV.

The pipeline parses the whole file first; a structurally broken file aborts
before anything is submitted. Each data row is then normalised into a create
payload and handed to a caller-supplied ``submit`` callable. Rows succeed or
fail independently, so the outcome is a tally rather than an exception.
"""

import csv
import enum
import io
import logging
import re
import secrets
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import AppException, CsvParseError
from app.models.student import StudentStatus
from app.schemas.student import ImportResult

logger = logging.getLogger(__name__)

# Normalised header -> record field. Synonyms for the same field are listed
# in priority order: the first non-empty one wins.
HEADER_SYNONYMS: dict[str, str] = {
    "name": "name",
    "email": "email",
    "phone": "phone",
    "interested_medical_professions": "course_interested",
    "courseinterested": "course_interested",
    "course": "course_interested",
    "location": "location",
    "status": "status",
    "current_status_citizenship": "citizenship_status",
    "citizenshipstatus": "citizenship_status",
    "current_situation": "current_situation",
    "currentsituation": "current_situation",
    "timestamp": "registration_date",
    "register_date": "registration_date",
    "registrationdate": "registration_date",
}

SYNONYM_PRIORITY = {synonym: rank for rank, synonym in enumerate(HEADER_SYNONYMS)}

SAMPLE_HEADER = [
    "name",
    "email",
    "phone",
    "interested_medical_professions",
    "location",
    "status",
    "current_status_citizenship",
    "current_situation",
    "timestamp",
]

DEFAULT_NAME = "Unknown"
DEFAULT_PHONE = "0000000000"

US_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ImportState(str, enum.Enum):
    """Lifecycle of one import run."""

    IDLE = "idle"
    PARSING = "parsing"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ParsedCsv:
    """Rows keyed by record field, plus any structural errors."""

    rows: list[dict[str, str]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def normalize_header(header: str) -> str:
    return re.sub(r"\s+", "", header).lower()


def map_headers(headers: list[str]) -> dict[str, list[int]]:
    """Map each record field to the column indexes that can supply it."""
    candidates: dict[str, list[tuple[int, int]]] = {}
    for index, header in enumerate(headers):
        key = normalize_header(header)
        target = HEADER_SYNONYMS.get(key)
        if target is None:
            continue
        candidates.setdefault(target, []).append((SYNONYM_PRIORITY[key], index))
    return {target: [index for _, index in sorted(cols)] for target, cols in candidates.items()}


def parse_csv(text: str) -> ParsedCsv:
    """Parse CSV text with a header row into field-keyed rows.

    Blank lines are skipped. Rows whose field count differs from the header
    are reported, as is broken quoting (which stops the parse).
    """
    parsed = ParsedCsv()
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")), strict=True)

    headers: list[str] | None = None
    columns: dict[str, list[int]] = {}
    try:
        for row in reader:
            if not row or all(not cell.strip() for cell in row):
                continue
            if headers is None:
                headers = row
                columns = map_headers(headers)
                continue
            if len(row) != len(headers):
                problem = "Too few fields" if len(row) < len(headers) else "Too many fields"
                parsed.errors.append(
                    f"Line {reader.line_num}: {problem}: expected {len(headers)} fields but parsed {len(row)}"
                )
                continue
            parsed.rows.append(_pick_fields(row, columns))
    except csv.Error as e:
        parsed.errors.append(f"Line {reader.line_num}: {e}")

    if headers is None and not parsed.errors:
        parsed.errors.append("CSV file is empty")
    return parsed


def _pick_fields(row: list[str], columns: dict[str, list[int]]) -> dict[str, str]:
    values: dict[str, str] = {}
    for target, indexes in columns.items():
        for index in indexes:
            value = row[index].strip()
            if value:
                values[target] = value
                break
    return values


def placeholder_email() -> str:
    """A unique stand-in address for rows without an email."""
    return f"unknown_{int(time.time() * 1000)}_{secrets.token_hex(6)}@example.com"


def normalize_registration_date(value: str | None, today: date | None = None) -> str:
    """Convert ``MM/DD/YYYY[ HH:MM:SS]`` or ``YYYY-MM-DD`` to ISO; else today."""
    fallback = (today or date.today()).isoformat()
    if not value:
        return fallback

    value = value.strip()
    match = US_DATE_RE.match(value)
    if match:
        month, day, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            return fallback

    if ISO_DATE_RE.match(value):
        try:
            return date.fromisoformat(value).isoformat()
        except ValueError:
            return fallback

    return fallback


def normalize_row(row: dict[str, str], today: date | None = None) -> dict[str, Any]:
    """Build a create payload from one parsed row, filling defaults."""
    return {
        "name": row.get("name") or DEFAULT_NAME,
        "email": row.get("email") or placeholder_email(),
        "phone": row.get("phone") or DEFAULT_PHONE,
        "course_interested": row.get("course_interested"),
        "location": row.get("location"),
        "status": row.get("status") or StudentStatus.PENDING.value,
        "citizenship_status": row.get("citizenship_status"),
        "current_situation": row.get("current_situation"),
        "registration_date": normalize_registration_date(row.get("registration_date"), today),
    }


def describe_error(exc: Exception) -> str:
    """One-line, human-readable description of a row failure."""
    if isinstance(exc, PydanticValidationError):
        return "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'row'}: {err['msg']}"
            for err in exc.errors()
        )
    if isinstance(exc, AppException):
        if exc.details and exc.code == "VALIDATION_ERROR":
            return f"{exc.message}: {exc.details}"
        return exc.message
    return str(exc) or exc.__class__.__name__


class CsvImportPipeline:
    """Parse a CSV and submit one create request per row.

    ``submit`` receives the normalised payload of a single row and raises on
    failure. Up to ``max_workers`` rows are in flight at once; with a single
    worker rows are submitted in order on the calling thread.
    """

    def __init__(
        self,
        submit: Callable[[dict[str, Any]], Any],
        max_workers: int = 1,
        today: date | None = None,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.submit = submit
        self.max_workers = max_workers
        self.today = today
        self.state = ImportState.IDLE
        self.result: ImportResult | None = None

    def run(self, text: str) -> ImportResult:
        self.state = ImportState.PARSING
        parsed = parse_csv(text)

        if parsed.errors:
            self.state = ImportState.FAILED
            logger.warning(f"CSV import aborted: {len(parsed.errors)} parse errors")
            raise CsvParseError(parsed.errors)
        if not parsed.rows:
            self.state = ImportState.FAILED
            raise CsvParseError(["CSV file must contain at least one student record"])

        self.state = ImportState.SUBMITTING
        payloads = [normalize_row(row, self.today) for row in parsed.rows]
        failures = self._submit_all(payloads)

        errors = [f"Row {row_number}: {message}" for row_number, message in sorted(failures.items())]
        self.result = ImportResult(
            succeeded=len(payloads) - len(failures),
            failed=len(failures),
            total=len(payloads),
            errors=errors,
        )
        self.state = ImportState.COMPLETED
        logger.info(
            f"CSV import completed: {self.result.succeeded} succeeded, "
            f"{self.result.failed} failed of {self.result.total}"
        )
        return self.result

    def _submit_one(self, row_number: int, payload: dict[str, Any]) -> str | None:
        try:
            self.submit(payload)
        except Exception as e:
            message = describe_error(e)
            logger.warning(f"CSV import row {row_number} failed: {message}")
            return message
        return None

    def _submit_all(self, payloads: list[dict[str, Any]]) -> dict[int, str]:
        """Submit every payload; returns failure messages keyed by row number."""
        failures: dict[int, str] = {}

        if self.max_workers == 1:
            for row_number, payload in enumerate(payloads, start=1):
                message = self._submit_one(row_number, payload)
                if message is not None:
                    failures[row_number] = message
            return failures

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self._submit_one, row_number, payload): row_number
                for row_number, payload in enumerate(payloads, start=1)
            }
            for future in as_completed(futures):
                message = future.result()
                if message is not None:
                    failures[futures[future]] = message
        return failures


def build_sample_csv(count: int = 5) -> str:
    """Synthetic import file with ``count`` well-formed rows."""
    first_names = ["John", "Maria", "David", "Sarah", "Ahmed", "Lisa", "Michael", "Jennifer", "Carlos", "Emily"]
    last_names = ["Smith", "Garcia", "Chen", "Johnson", "Hassan", "Brown", "Davis", "Miller", "Wilson", "Moore"]
    professions = [
        "Nursing",
        "Medical Assistant",
        "Dental Assistant",
        "Pharmacy Technician",
        "Physical Therapy Assistant",
        "Radiology Technician",
        "Phlebotomy Technician",
    ]
    cities = ["New York", "Los Angeles", "Chicago", "Houston", "Miami", "Phoenix", "Seattle", "Denver"]
    statuses = [s.value for s in StudentStatus]
    citizenship = ["Citizen", "Permanent Resident", "Work Visa", "Student Visa", "Asylum Seeker"]
    situations = ["Student", "Employed Part-time", "Unemployed", "Career Change", "Recent Graduate"]

    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(SAMPLE_HEADER)
    for i in range(count):
        first = first_names[i % len(first_names)]
        last = last_names[(i // len(first_names) + i) % len(last_names)]
        # Spread registrations across January-March 2024
        timestamp = f"{(i % 3) + 1:02d}/{(i % 28) + 1:02d}/2024"
        writer.writerow([
            f"{first} {last}",
            f"{first.lower()}.{last.lower()}{i}@email.com",
            f"555-{100 + i // 100:03d}-{1000 + i % 100:04d}",
            professions[i % len(professions)],
            cities[i % len(cities)],
            statuses[i % len(statuses)],
            citizenship[i % len(citizenship)],
            situations[i % len(situations)],
            timestamp,
        ])
    return output.getvalue()
