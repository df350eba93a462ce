from datetime import date
from typing import Dict, Iterable, Iterator

from admissions.api.schemas.applications import ALL, ApplicationFilter, ApplicationStats, ApplicationStatus
from admissions.db.models import Application


def matches_search(app: Application, search: str) -> bool:
    """Case-insensitive substring match against name, reference code, father's name and phone."""
    if not search:
        return True
    needle = search.lower()
    haystack = (app.student_name, app.reference_code, app.father_name, app.phone)
    return any(needle in (value or "").lower() for value in haystack)


def matches(app: Application, filt: ApplicationFilter) -> bool:
    if not matches_search(app, filt.search):
        return False
    if filt.status != ALL and app.status != filt.status:
        return False
    if filt.applying_for_class != ALL and app.applying_for_class != filt.applying_for_class:
        return False
    if filt.priority != ALL and app.priority != filt.priority:
        return False
    return True


def filter_applications(apps: Iterable[Application], filt: ApplicationFilter) -> Iterator[Application]:
    """Lazily yield the applications passing every predicate, in input order."""
    return (app for app in apps if matches(app, filt))


def compute_stats(apps: Iterable[Application], today: date) -> ApplicationStats:
    """
    Derived counts over the whole collection.

    ``today`` is compared against the calendar day of each applied date.
    The approval rate is approved/total, and 0.0 for an empty collection.
    ``by_class`` counts applications per class applied for; classes with no
    applications are absent.
    """
    counts = {status.value: 0 for status in ApplicationStatus}
    by_class: Dict[str, int] = {}
    total = 0
    applied_today = 0
    for app in apps:
        total += 1
        counts[app.status] = counts.get(app.status, 0) + 1
        by_class[app.applying_for_class] = by_class.get(app.applying_for_class, 0) + 1
        if app.applied_at.date() == today:
            applied_today += 1

    approved = counts[ApplicationStatus.APPROVED.value]
    return ApplicationStats(
        total=total,
        pending=counts[ApplicationStatus.PENDING.value],
        reviewed=counts[ApplicationStatus.REVIEWED.value],
        approved=approved,
        rejected=counts[ApplicationStatus.REJECTED.value],
        waitlisted=counts[ApplicationStatus.WAITLISTED.value],
        today=applied_today,
        approval_rate=approved / total if total else 0.0,
        by_class=by_class,
    )
