"""Database schema definition and ORM models.

Tables mirror the job board's collections: ``users`` (job seekers and
employers), ``jobs`` (postings, read-only for the alert service) and
``job_alerts``. Timestamps are stored as fixed-width ISO 8601 strings.
"""

import logging

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    inspect,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship

from job_alerts.domain.models import (
    Alert,
    AlertSettings,
    JobListing,
    SalaryRange,
    User,
)
from job_alerts.utils.timestamps import format_storage_timestamp, parse_storage_timestamp

logger = logging.getLogger(__name__)

Base = declarative_base()


class UserModel(Base):
    """ORM model for users table."""

    __tablename__ = "users"

    id = Column(String(64), primary_key=True, nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    user_type = Column(String(20), nullable=False, default="jobseeker")
    company_name = Column(String(255), nullable=True)

    # Profile lists stored as JSON arrays
    skills = Column(JSON, nullable=False, default=list)
    experience = Column(JSON, nullable=False, default=list)
    education = Column(JSON, nullable=False, default=list)

    alerts_enabled = Column(Boolean, nullable=False, default=False)
    alerts_email = Column(Boolean, nullable=False, default=True)
    alerts_in_app = Column(Boolean, nullable=False, default=True)

    def to_domain(self) -> User:
        return User(
            id=self.id,
            email=self.email,
            name=self.name,
            first_name=self.first_name,
            last_name=self.last_name,
            user_type=self.user_type,
            company_name=self.company_name,
            skills=self.skills or [],
            experience=self.experience or [],
            education=self.education or [],
            alert_settings=AlertSettings(
                enabled=bool(self.alerts_enabled),
                email=bool(self.alerts_email),
                in_app=bool(self.alerts_in_app),
            ),
        )

    def apply(self, user: User) -> None:
        """Copy every field of ``user`` onto this row."""
        self.email = user.email
        self.name = user.name
        self.first_name = user.first_name
        self.last_name = user.last_name
        self.user_type = user.user_type.value
        self.company_name = user.company_name
        self.skills = list(user.skills)
        self.experience = [entry.model_dump() for entry in user.experience]
        self.education = [entry.model_dump() for entry in user.education]
        self.alerts_enabled = user.alert_settings.enabled
        self.alerts_email = user.alert_settings.email
        self.alerts_in_app = user.alert_settings.in_app

    @classmethod
    def from_domain(cls, user: User) -> "UserModel":
        model = cls(id=user.id)
        model.apply(user)
        return model


class JobModel(Base):
    """ORM model for jobs table.

    The employer relationship is joined eagerly so that listings can carry
    the employer's display name without a second query per row.
    """

    __tablename__ = "jobs"

    id = Column(String(64), primary_key=True, nullable=False)
    title = Column(Text, nullable=False)
    company = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    requirements = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    type = Column(String(50), nullable=True)
    salary_min = Column(Float, nullable=True)
    salary_max = Column(Float, nullable=True)
    salary_currency = Column(String(10), nullable=True, default="USD")
    status = Column(String(20), nullable=False, default="open")
    created_at = Column(String(50), nullable=False)
    employer_id = Column(String(64), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    employer = relationship(UserModel, lazy="joined")

    __table_args__ = (
        Index("idx_jobs_status_created", "status", "created_at"),
    )

    def to_domain(self) -> JobListing:
        employer_name = None
        if self.employer is not None:
            employer_name = self.employer.company_name or self.employer.name

        return JobListing(
            id=self.id,
            title=self.title,
            company=self.company,
            description=self.description or "",
            requirements=self.requirements or "",
            location=self.location or "",
            type=self.type or "",
            salary_min=self.salary_min,
            salary_max=self.salary_max,
            salary_currency=self.salary_currency or "USD",
            status=self.status,
            created_at=parse_storage_timestamp(self.created_at),
            employer_id=self.employer_id,
            employer_name=employer_name or self.company,
        )

    @classmethod
    def from_domain(cls, job: JobListing) -> "JobModel":
        model = cls(id=job.id)
        model.apply(job)
        return model

    def apply(self, job: JobListing) -> None:
        self.title = job.title
        self.company = job.company
        self.description = job.description
        self.requirements = job.requirements
        self.location = job.location
        self.type = job.type
        self.salary_min = job.salary_min
        self.salary_max = job.salary_max
        self.salary_currency = job.salary_currency
        self.status = job.status
        self.created_at = format_storage_timestamp(job.created_at)
        self.employer_id = job.employer_id


class AlertModel(Base):
    """ORM model for job_alerts table."""

    __tablename__ = "job_alerts"

    id = Column(String(64), primary_key=True, nullable=False)
    owner_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)

    keywords = Column(JSON, nullable=False, default=list)
    locations = Column(JSON, nullable=False, default=list)
    job_types = Column(JSON, nullable=False, default=list)

    salary_min = Column(Float, nullable=True)
    salary_max = Column(Float, nullable=True)
    salary_currency = Column(String(10), nullable=False, default="USD")

    frequency = Column(String(20), nullable=False, default="daily")
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(String(50), nullable=False)
    last_sent_at = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_job_alerts_owner", "owner_id"),
        Index("idx_job_alerts_frequency_active", "frequency", "is_active"),
    )

    def to_domain(self) -> Alert:
        return Alert(
            id=self.id,
            owner_id=self.owner_id,
            name=self.name,
            keywords=self.keywords or [],
            locations=self.locations or [],
            job_types=self.job_types or [],
            salary=SalaryRange(
                min=self.salary_min,
                max=self.salary_max,
                currency=self.salary_currency or "USD",
            ),
            frequency=self.frequency,
            is_active=bool(self.is_active),
            created_at=parse_storage_timestamp(self.created_at),
            last_sent_at=parse_storage_timestamp(self.last_sent_at),
        )

    def apply(self, alert: Alert) -> None:
        """Copy the owner-editable fields of ``alert`` onto this row."""
        self.name = alert.name
        self.keywords = list(alert.keywords)
        self.locations = list(alert.locations)
        self.job_types = [job_type.value for job_type in alert.job_types]
        self.salary_min = alert.salary.min
        self.salary_max = alert.salary.max
        self.salary_currency = alert.salary.currency
        self.frequency = alert.frequency.value
        self.is_active = alert.is_active

    @classmethod
    def from_domain(cls, alert: Alert) -> "AlertModel":
        model = cls(
            id=alert.id,
            owner_id=alert.owner_id,
            created_at=format_storage_timestamp(alert.created_at),
            last_sent_at=format_storage_timestamp(alert.last_sent_at),
        )
        model.apply(alert)
        return model


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent)."""
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
