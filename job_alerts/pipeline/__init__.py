"""Alert pipeline orchestration."""

from .models import AlertOutcome, AlertTestResult, CycleResult, RecentMatchesResult
from .runner import AlertPipeline

__all__ = [
    "AlertPipeline",
    "AlertOutcome",
    "AlertTestResult",
    "CycleResult",
    "RecentMatchesResult",
]
