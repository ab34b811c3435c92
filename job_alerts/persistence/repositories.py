"""Data access layer (repositories) for persistence operations.

Repositories wrap a SQLAlchemy session and speak domain models: callers never
see ORM rows. Every SQLAlchemy failure is re-raised as a PersistenceError.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from pydantic import ValidationError
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from job_alerts.domain.models import Alert, AlertFrequency, JobListing, User
from job_alerts.utils.timestamps import (
    ensure_utc,
    format_storage_timestamp,
    parse_storage_timestamp,
)

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import AlertModel, JobModel, UserModel

if TYPE_CHECKING:
    from job_alerts.matching.query import JobQuery

logger = logging.getLogger(__name__)


def _valid_records(models, kind: str) -> list:
    """Convert rows to domain records, skipping rows that fail validation.

    Rows written by other tools sharing the database may not validate; they
    are logged and left out.
    """
    records = []
    for model in models:
        try:
            records.append(model.to_domain())
        except ValidationError as e:
            logger.warning(
                f"Skipping invalid {kind} row {model.id}: {e.error_count()} validation error(s)",
                extra={"event": f"{kind}.load.invalid", f"{kind}_id": model.id, "error": str(e)},
            )
    return records


class AlertRepository:
    """Repository for job alert rows."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, alert: Alert) -> Alert:
        """Insert a new alert.

        Raises:
            DataIntegrityError: If the id already exists or the owner is unknown
            PersistenceError: If database error occurs
        """
        try:
            model = AlertModel.from_domain(alert)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error inserting alert {alert.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to insert alert: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting alert {alert.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert alert: {e}") from e

    def get_by_id(self, alert_id: str) -> Optional[Alert]:
        """Return the alert or None if it does not exist."""
        try:
            model = self.session.get(AlertModel, alert_id)
            return model.to_domain() if model is not None else None
        except ValidationError as e:
            raise DataIntegrityError(f"Stored alert {alert_id} is invalid: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve alert: {e}") from e

    def list_for_owner(self, owner_id: str, active_only: bool = False) -> List[Alert]:
        """Alerts owned by ``owner_id``, newest first."""
        try:
            stmt = select(AlertModel).where(AlertModel.owner_id == owner_id)
            if active_only:
                stmt = stmt.where(AlertModel.is_active.is_(True))
            stmt = stmt.order_by(AlertModel.created_at.desc(), AlertModel.id)
            return _valid_records(self.session.execute(stmt).scalars().all(), "alert")
        except SQLAlchemyError as e:
            logger.error(f"Error listing alerts for owner {owner_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list alerts: {e}") from e

    def list_active(self, frequency: AlertFrequency) -> List[Alert]:
        """Active alerts of one frequency, oldest first.

        Args:
            frequency: Cadence class processed by the calling cycle

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(AlertModel)
                .where(
                    AlertModel.frequency == AlertFrequency(frequency).value,
                    AlertModel.is_active.is_(True),
                )
                .order_by(AlertModel.created_at, AlertModel.id)
            )
            return _valid_records(self.session.execute(stmt).scalars().all(), "alert")
        except SQLAlchemyError as e:
            logger.error(f"Error listing active {frequency} alerts: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list active alerts: {e}") from e

    def update(self, alert: Alert) -> Alert:
        """Persist the owner-editable fields of ``alert``.

        The watermark is left alone; use update_last_sent() for that.

        Raises:
            RecordNotFoundError: If the alert no longer exists
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(AlertModel, alert.id)
            if model is None:
                raise RecordNotFoundError(f"Alert {alert.id} not found")
            model.apply(alert)
            self.session.flush()
            return model.to_domain()
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating alert {alert.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update alert: {e}") from e

    def delete(self, alert_id: str) -> bool:
        """Delete an alert. Returns False if it did not exist."""
        try:
            result = self.session.execute(delete(AlertModel).where(AlertModel.id == alert_id))
            self.session.flush()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error(f"Error deleting alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete alert: {e}") from e

    def update_last_sent(self, alert_id: str, sent_at: datetime) -> datetime:
        """Advance the alert's watermark to ``sent_at``.

        The watermark never moves backwards: if the stored value is already
        later, it is kept. Returns the watermark now stored.

        Raises:
            RecordNotFoundError: If the alert no longer exists
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(AlertModel, alert_id)
            if model is None:
                raise RecordNotFoundError(f"Alert {alert_id} not found")

            candidate = ensure_utc(sent_at)
            previous = parse_storage_timestamp(model.last_sent_at)
            if previous is not None and previous >= candidate:
                return previous

            model.last_sent_at = format_storage_timestamp(candidate)
            self.session.flush()
            return candidate
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating watermark for alert {alert_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update last_sent_at: {e}") from e


class JobRepository:
    """Repository for job listings."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, job_id: str) -> Optional[JobListing]:
        try:
            model = self.session.get(JobModel, job_id)
            return model.to_domain() if model is not None else None
        except ValidationError as e:
            raise DataIntegrityError(f"Stored job {job_id} is invalid: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving job {job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve job: {e}") from e

    def upsert(self, job: JobListing) -> JobListing:
        """Insert a listing or overwrite the stored copy.

        The alert service never writes listings in production; this exists
        for seeding and tests.
        """
        try:
            existing = self.session.get(JobModel, job.id)
            if existing is not None:
                existing.apply(job)
                model = existing
            else:
                model = JobModel.from_domain(job)
                self.session.add(model)
            self.session.flush()
            self.session.refresh(model)
            return model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error upserting job {job.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to upsert job due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting job {job.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert job: {e}") from e

    def search(self, query: "JobQuery") -> List[JobListing]:
        """Return open listings matching ``query``, newest first.

        Keyword and location terms are matched as case-insensitive substrings
        with LIKE wildcards escaped, so user input is always taken literally.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = select(JobModel).where(func.lower(JobModel.status) == "open")

            if query.since is not None:
                stmt = stmt.where(JobModel.created_at > format_storage_timestamp(query.since))

            if query.keywords:
                stmt = stmt.where(
                    or_(
                        *(
                            column.icontains(keyword, autoescape=True)
                            for keyword in query.keywords
                            for column in (
                                JobModel.title,
                                JobModel.description,
                                JobModel.requirements,
                            )
                        )
                    )
                )

            if query.locations:
                stmt = stmt.where(
                    or_(*(JobModel.location.icontains(term, autoescape=True) for term in query.locations))
                )

            if query.job_types:
                stmt = stmt.where(func.lower(JobModel.type).in_(list(query.job_types)))

            if query.salary_applies:
                stmt = stmt.where(JobModel.salary_min >= (query.salary_min or 0))
                if query.salary_max and query.salary_max > 0:
                    stmt = stmt.where(JobModel.salary_max <= query.salary_max)

            stmt = stmt.order_by(JobModel.created_at.desc(), JobModel.id)
            if query.limit:
                stmt = stmt.limit(query.limit)

            return _valid_records(self.session.execute(stmt).unique().scalars().all(), "job")

        except SQLAlchemyError as e:
            logger.error(f"Error searching jobs: {e}", exc_info=True)
            raise PersistenceError(f"Failed to search jobs: {e}") from e


class UserRepository:
    """Repository for user accounts."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, user_id: str) -> Optional[User]:
        try:
            model = self.session.get(UserModel, user_id)
            return model.to_domain() if model is not None else None
        except ValidationError as e:
            raise DataIntegrityError(f"Stored user {user_id} is invalid: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user: {e}") from e

    def upsert(self, user: User) -> User:
        """Insert a user or overwrite the stored copy."""
        try:
            model = self.session.get(UserModel, user.id)
            if model is None:
                model = UserModel.from_domain(user)
                self.session.add(model)
            else:
                model.apply(user)
            self.session.flush()
            return model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error upserting user {user.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to upsert user: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting user {user.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert user: {e}") from e

    def enable_alerts(self, user_id: str) -> bool:
        """Switch on the user's alert delivery. Returns True if it was off.

        Raises:
            RecordNotFoundError: If the user does not exist
        """
        try:
            model = self.session.get(UserModel, user_id)
            if model is None:
                raise RecordNotFoundError(f"User {user_id} not found")
            if model.alerts_enabled:
                return False
            model.alerts_enabled = True
            self.session.flush()
            return True
        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error enabling alerts for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to enable alerts: {e}") from e
