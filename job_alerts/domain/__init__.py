"""Domain models for the job alert service."""

from .models import (
    Alert,
    AlertCreate,
    AlertFrequency,
    AlertSettings,
    AlertUpdate,
    EducationEntry,
    ExperienceEntry,
    JobListing,
    JobStatus,
    JobType,
    SalaryRange,
    User,
    UserType,
    default_alert_name,
)

__all__ = [
    "Alert",
    "AlertCreate",
    "AlertUpdate",
    "AlertFrequency",
    "AlertSettings",
    "SalaryRange",
    "JobListing",
    "JobStatus",
    "JobType",
    "User",
    "UserType",
    "ExperienceEntry",
    "EducationEntry",
    "default_alert_name",
]
