"""Job matching against alert criteria."""

from .engine import JobMatcher
from .models import AggregatedMatches, MatchOutcome
from .query import JobQuery, build_alert_query, build_union_query, resolve_limit

__all__ = [
    "JobMatcher",
    "JobQuery",
    "MatchOutcome",
    "AggregatedMatches",
    "build_alert_query",
    "build_union_query",
    "resolve_limit",
]
