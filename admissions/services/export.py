import csv
import io
from datetime import date
from typing import Iterable

from admissions.db.models import Application

CSV_HEADERS = [
    "Application ID",
    "Student Name",
    "Father Name",
    "Phone",
    "Email",
    "Applying For Class",
    "Previous School",
    "Status",
    "Applied Date",
    "Category",
    "Marks Obtained",
    "Payment Status",
]


def export_filename(today: date) -> str:
    return f"admissions_{today.isoformat()}.csv"


def application_row(app: Application) -> list:
    return [
        app.reference_code,
        app.student_name,
        app.father_name,
        app.phone,
        app.email or "",
        app.applying_for_class,
        app.previous_school or "",
        app.status,
        app.applied_at.date().isoformat(),
        app.category or "",
        app.marks_obtained or "N/A",
        "Paid" if app.is_paid else "Pending",
    ]


def applications_to_csv(apps: Iterable[Application]) -> str:
    """
    Serialize applications to CSV text, header row first.
    Fields holding commas, quotes or newlines are quoted (RFC 4180).
    """
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for app in apps:
        writer.writerow(application_row(app))
    return output.getvalue()
