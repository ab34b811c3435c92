"""Structured job filters derived from alert criteria.

A JobQuery is evaluated in SQL by ``JobRepository.search`` and in memory by
``JobQuery.matches``; both apply these rules:

- only open listings;
- ``created_at`` strictly after ``since`` when given;
- any keyword appears in the title, description or requirements;
- any location term appears in the location;
- the type equals one of the accepted types;
- salary bounds, when the alert sets a positive minimum or maximum.

Each clause is skipped when its criteria list is empty. Terms are literal,
case-insensitive substrings.

Case folding differs for non-ASCII text: SQLite folds only ASCII letters in
``lower()`` and ``LIKE``, while the in-memory check uses ``re.IGNORECASE``.
A keyword such as "Müller" can therefore match "MÜLLER" in memory but not
in SQLite.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Pattern, Tuple

from job_alerts.domain.models import Alert, JobListing
from job_alerts.utils.text import normalize_terms
from job_alerts.utils.timestamps import ensure_utc


def resolve_limit(limit: Optional[int]) -> Optional[int]:
    """Map a configured cap to a query limit; zero or negative means no cap."""
    if limit is None or limit <= 0:
        return None
    return limit


def _any_term_pattern(terms: Iterable[str]) -> Optional[Pattern]:
    escaped = [re.escape(term) for term in terms if term]
    if not escaped:
        return None
    return re.compile("|".join(escaped), re.IGNORECASE)


@dataclass(frozen=True)
class JobQuery:
    """Conjunctive job filter. Empty tuples disable their clause."""

    since: Optional[datetime] = None
    keywords: Tuple[str, ...] = ()
    locations: Tuple[str, ...] = ()
    job_types: Tuple[str, ...] = ()
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    limit: Optional[int] = None

    @property
    def salary_applies(self) -> bool:
        return (self.salary_min or 0) > 0 or (self.salary_max or 0) > 0

    @property
    def is_catch_all(self) -> bool:
        return not (self.keywords or self.locations or self.job_types or self.salary_applies)

    def matches(self, job: JobListing) -> bool:
        """Evaluate the filter against one listing in memory.

        This is the reference definition of the rules; the tests check
        ``JobRepository.search`` against it.
        """
        if not job.is_open:
            return False

        if self.since is not None and not job.created_at > ensure_utc(self.since):
            return False

        keyword_pattern = _any_term_pattern(self.keywords)
        if keyword_pattern is not None:
            fields = (job.title, job.description, job.requirements)
            if not any(keyword_pattern.search(text or "") for text in fields):
                return False

        location_pattern = _any_term_pattern(self.locations)
        if location_pattern is not None and not location_pattern.search(job.location or ""):
            return False

        if self.job_types and (job.type or "").lower() not in self.job_types:
            return False

        if self.salary_applies:
            if job.salary_min is None or job.salary_min < (self.salary_min or 0):
                return False
            if self.salary_max and self.salary_max > 0:
                if job.salary_max is None or job.salary_max > self.salary_max:
                    return False

        return True


def build_alert_query(alert: Alert, since: Optional[datetime] = None, limit: Optional[int] = 10) -> JobQuery:
    """Translate an alert's criteria into a JobQuery.

    Args:
        alert: Alert whose criteria drive the filter
        since: Only listings created strictly after this instant (None = no bound)
        limit: Maximum number of results; zero or negative means unbounded

    Example:
        >>> query = build_alert_query(alert, since=alert.last_sent_at, limit=10)
        >>> query.keywords
        ('react',)
    """
    return JobQuery(
        since=ensure_utc(since),
        keywords=tuple(alert.keywords),
        locations=tuple(alert.locations),
        job_types=tuple(job_type.value for job_type in alert.job_types),
        salary_min=alert.salary.min,
        salary_max=alert.salary.max,
        limit=resolve_limit(limit),
    )


def build_union_query(alerts: Iterable[Alert], limit: Optional[int] = 20) -> JobQuery:
    """Merge the keywords, locations and types of several alerts into one filter.

    Salary bounds and watermarks are not carried over: the union answers
    "which open jobs are relevant to any of my alerts".
    """
    keywords, locations, job_types = [], [], []
    for alert in alerts:
        keywords.extend(alert.keywords)
        locations.extend(alert.locations)
        job_types.extend(job_type.value for job_type in alert.job_types)

    return JobQuery(
        keywords=tuple(normalize_terms(keywords)),
        locations=tuple(normalize_terms(locations)),
        job_types=tuple(dict.fromkeys(job_types)),
        limit=resolve_limit(limit),
    )
