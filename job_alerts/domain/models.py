"""Core domain models for alerts, job listings, and users.

This module defines the records exchanged between the store, the matcher,
and the notification pipeline:
- Alert: a job seeker's saved search, with its delivery watermark
- AlertCreate / AlertUpdate: owner-supplied input, validated before storage
- JobListing: read-only view of a posting from the job board
- User: job seeker or employer, including alert preferences
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from job_alerts.utils.text import normalize_terms
from job_alerts.utils.timestamps import ensure_utc


class AlertFrequency(str, Enum):
    """Cadence classes; each one is processed by its own scheduled cycle."""

    IMMEDIATE = "immediate"
    DAILY = "daily"
    WEEKLY = "weekly"


class JobType(str, Enum):
    """Employment types a posting (and an alert filter) can carry."""

    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"


class JobStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class UserType(str, Enum):
    JOBSEEKER = "jobseeker"
    EMPLOYER = "employer"


def default_alert_name(keywords: List[str]) -> str:
    """Label used when the owner does not name an alert.

    Example:
        >>> default_alert_name(["react", "typescript"])
        'Alert: react, typescript...'
    """
    return f"Alert: {', '.join(keywords)[:30]}..."


class SalaryRange(BaseModel):
    """Optional salary bounds. Zero or missing means "no bound"."""

    min: Optional[float] = Field(None, ge=0, description="Lowest acceptable minimum salary")
    max: Optional[float] = Field(None, ge=0, description="Highest acceptable maximum salary")
    currency: str = Field("USD", min_length=1, description="ISO currency code")

    @model_validator(mode="after")
    def check_bounds(self):
        """Reject ranges whose minimum exceeds the maximum."""
        if self.min and self.max and self.min > self.max:
            raise ValueError(f"Salary minimum ({self.min}) cannot exceed maximum ({self.max})")
        return self

    @property
    def is_bounded(self) -> bool:
        return (self.min or 0) > 0 or (self.max or 0) > 0


def _normalize_job_types(value):
    if value is None:
        return []
    if isinstance(value, (str, JobType)):
        value = [value]
    normalized = []
    for item in value:
        text = item.value if isinstance(item, JobType) else str(item).strip().lower()
        if text and text not in normalized:
            normalized.append(text)
    return normalized


class Alert(BaseModel):
    """A stored job alert.

    ``last_sent_at`` is the watermark: the next scheduled cycle only matches
    jobs created strictly after it. The pipeline writes nothing else.
    """

    id: str = Field(..., min_length=1, description="Alert identifier")
    owner_id: str = Field(..., min_length=1, description="Job seeker who owns the alert")
    name: str = Field(..., description="Display label")
    keywords: List[str] = Field(default_factory=list, description="OR-matched substrings")
    locations: List[str] = Field(default_factory=list, description="OR-matched location substrings")
    job_types: List[JobType] = Field(default_factory=list, description="Accepted employment types")
    salary: SalaryRange = Field(default_factory=SalaryRange, description="Salary bounds")
    frequency: AlertFrequency = Field(AlertFrequency.DAILY, description="Delivery cadence")
    is_active: bool = Field(True, description="Inactive alerts are never processed")
    created_at: datetime = Field(..., description="Creation time (UTC)")
    last_sent_at: Optional[datetime] = Field(None, description="Watermark of the last delivery (UTC)")

    @field_validator("keywords", "locations", mode="before")
    @classmethod
    def clean_terms(cls, v):
        return normalize_terms(v)

    @field_validator("job_types", mode="before")
    @classmethod
    def clean_job_types(cls, v):
        return _normalize_job_types(v)

    @field_validator("created_at", "last_sent_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    model_config = {"json_schema_extra": {"example": {
        "id": "5f0c8e2b9d3a4c1e8f7a6b5c4d3e2f10",
        "owner_id": "a1b2c3d4e5f60718293a4b5c6d7e8f90",
        "name": "Alert: react...",
        "keywords": ["react"],
        "locations": ["Remote"],
        "job_types": ["full-time"],
        "salary": {"min": 80000, "max": 0, "currency": "USD"},
        "frequency": "daily",
        "is_active": True,
        "created_at": "2025-11-01T12:00:00Z",
        "last_sent_at": None,
    }}}


class AlertCreate(BaseModel):
    """Owner input for a new alert. Keywords are mandatory."""

    name: Optional[str] = None
    keywords: List[str]
    locations: List[str] = Field(default_factory=list)
    job_types: List[JobType] = Field(default_factory=list)
    salary: SalaryRange = Field(default_factory=SalaryRange)
    frequency: AlertFrequency = AlertFrequency.DAILY
    is_active: bool = True

    @field_validator("keywords", mode="before")
    @classmethod
    def require_keywords(cls, v):
        terms = normalize_terms(v if isinstance(v, list) else [])
        if not terms:
            raise ValueError("Keywords are required")
        return terms

    @field_validator("locations", mode="before")
    @classmethod
    def clean_locations(cls, v):
        return normalize_terms(v)

    @field_validator("job_types", mode="before")
    @classmethod
    def clean_job_types(cls, v):
        return _normalize_job_types(v)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    @property
    def display_name(self) -> str:
        return self.name or default_alert_name(self.keywords)


class AlertUpdate(BaseModel):
    """Partial update of an alert's criteria. Unset fields are left alone."""

    name: Optional[str] = None
    keywords: Optional[List[str]] = None
    locations: Optional[List[str]] = None
    job_types: Optional[List[JobType]] = None
    salary: Optional[SalaryRange] = None
    frequency: Optional[AlertFrequency] = None
    is_active: Optional[bool] = None

    @field_validator("keywords", mode="before")
    @classmethod
    def require_keywords(cls, v):
        if v is None:
            return None
        terms = normalize_terms(v if isinstance(v, list) else [])
        if not terms:
            raise ValueError("Keywords cannot be empty")
        return terms

    @field_validator("locations", mode="before")
    @classmethod
    def clean_locations(cls, v):
        if v is None:
            return None
        return normalize_terms(v)

    @field_validator("job_types", mode="before")
    @classmethod
    def clean_job_types(cls, v):
        if v is None:
            return None
        return _normalize_job_types(v)


class JobListing(BaseModel):
    """A posting as read from the job board's store."""

    id: str = Field(..., min_length=1)
    title: str = Field(..., description="Job title")
    company: Optional[str] = Field(None, description="Company name entered on the posting")
    description: str = Field("", description="Full description text")
    requirements: str = Field("", description="Requirements text")
    location: str = Field("", description="Free-text location")
    type: str = Field("", description="Employment type, e.g. full-time")
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    salary_currency: str = "USD"
    status: str = Field(JobStatus.OPEN.value, description="open or closed")
    created_at: datetime = Field(..., description="Posting time (UTC)")
    employer_id: Optional[str] = None
    employer_name: Optional[str] = Field(None, description="Resolved employer display name")

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def is_open(self) -> bool:
        return self.status.lower() == JobStatus.OPEN.value

    @property
    def display_company(self) -> str:
        return self.employer_name or self.company or "Unknown employer"

    @property
    def salary_text(self) -> str:
        """Salary range for display, e.g. ``80,000 - 120,000 USD``."""
        if self.salary_min is None and self.salary_max is None:
            return "Not specified"
        low = f"{self.salary_min:,.0f}" if self.salary_min is not None else "?"
        high = f"{self.salary_max:,.0f}" if self.salary_max is not None else "?"
        return f"{low} - {high} {self.salary_currency or 'USD'}"


class ExperienceEntry(BaseModel):
    title: str = ""
    company: str = ""


class EducationEntry(BaseModel):
    degree: str = ""
    institution: str = ""


class AlertSettings(BaseModel):
    """Per-user switches for alert delivery."""

    enabled: bool = False
    email: bool = True
    in_app: bool = True


class User(BaseModel):
    """A job board account. Job seekers own alerts; employers own postings."""

    id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    name: str = Field(..., description="Account display name")
    user_type: UserType = UserType.JOBSEEKER
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    experience: List[ExperienceEntry] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    alert_settings: AlertSettings = Field(default_factory=AlertSettings)

    @field_validator("skills", mode="before")
    @classmethod
    def clean_skills(cls, v):
        return normalize_terms(v)

    @property
    def is_job_seeker(self) -> bool:
        return self.user_type == UserType.JOBSEEKER

    @property
    def greeting_name(self) -> str:
        return self.first_name or self.name

    @property
    def employer_display_name(self) -> str:
        return self.company_name or self.name

    @property
    def wants_email_alerts(self) -> bool:
        """True when alerts are globally enabled and the e-mail channel is on."""
        return self.alert_settings.enabled and self.alert_settings.email
