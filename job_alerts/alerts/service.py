"""Alert management operations for job seekers.

This is the layer a web API calls: it enforces that only job seekers manage
alerts, that only the owner touches an alert, and that input is valid before
anything is stored.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union
from uuid import uuid4

from pydantic import ValidationError

from job_alerts.domain.models import Alert, AlertCreate, AlertUpdate, User
from job_alerts.logging import get_logger
from job_alerts.persistence import AlertRepository, SessionScope, UserRepository, get_session
from job_alerts.utils.timestamps import utc_now

from .exceptions import AlertAccessDeniedError, AlertNotFoundError, AlertValidationError

logger = get_logger(__name__, component="alerts")


def _validation_messages(error: ValidationError) -> List[str]:
    messages = []
    for item in error.errors():
        field_path = ".".join(str(loc) for loc in item["loc"])
        message = item["msg"].removeprefix("Value error, ")
        messages.append(f"{field_path}: {message}" if field_path else message)
    return messages


class AlertService:
    """Create, read, update, toggle and delete job alerts."""

    def __init__(
        self,
        session_scope: SessionScope = get_session,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = lambda: uuid4().hex,
    ):
        self.session_scope = session_scope
        self.clock = clock
        self.id_factory = id_factory

    def create_alert(self, owner_id: str, data: Union[AlertCreate, Dict[str, Any]]) -> Alert:
        """
        Store a new alert for ``owner_id``.

        Also switches on the owner's alert delivery if it was off.

        Raises:
            AlertAccessDeniedError: If the owner is not a job seeker
            AlertValidationError: If the input is invalid (e.g. no keywords)
        """
        request = self._parse(AlertCreate, data)

        with self.session_scope() as session:
            users = UserRepository(session)
            self._require_job_seeker(users, owner_id, "create alerts")

            alert = Alert(
                id=self.id_factory(),
                owner_id=owner_id,
                name=request.display_name,
                keywords=request.keywords,
                locations=request.locations,
                job_types=request.job_types,
                salary=request.salary,
                frequency=request.frequency,
                is_active=request.is_active,
                created_at=self.clock(),
            )
            stored = AlertRepository(session).add(alert)
            enabled = users.enable_alerts(owner_id)

        logger.info(
            f"Created alert {stored.id} for owner {owner_id}",
            extra={
                "event": "alert.created",
                "alert_id": stored.id,
                "owner_id": owner_id,
                "frequency": stored.frequency.value,
                "alerts_enabled_for_owner": enabled,
            },
        )
        return stored

    def list_alerts(self, owner_id: str) -> List[Alert]:
        """All alerts of ``owner_id``, newest first."""
        with self.session_scope() as session:
            self._require_job_seeker(UserRepository(session), owner_id, "access alerts")
            return AlertRepository(session).list_for_owner(owner_id)

    def get_alert(self, owner_id: str, alert_id: str) -> Alert:
        with self.session_scope() as session:
            self._require_job_seeker(UserRepository(session), owner_id, "access alerts")
            return self._owned_alert(AlertRepository(session), owner_id, alert_id, "access")

    def update_alert(
        self, owner_id: str, alert_id: str, changes: Union[AlertUpdate, Dict[str, Any]]
    ) -> Alert:
        """
        Apply the fields set in ``changes``; fields left out keep their value.

        Raises:
            AlertAccessDeniedError: If the caller is not the owning job seeker
            AlertNotFoundError: If the alert does not exist
            AlertValidationError: If the changes are invalid
        """
        update = self._parse(AlertUpdate, changes)

        with self.session_scope() as session:
            self._require_job_seeker(UserRepository(session), owner_id, "update alerts")
            alerts = AlertRepository(session)
            current = self._owned_alert(alerts, owner_id, alert_id, "update")

            values = {
                name: getattr(update, name)
                for name in update.model_fields_set
                if getattr(update, name) is not None
            }
            if isinstance(values.get("name"), str) and not values["name"].strip():
                values.pop("name")

            try:
                merged = Alert.model_validate({**current.model_dump(), **_dump(values)})
            except ValidationError as e:
                raise AlertValidationError("Invalid alert update", _validation_messages(e)) from e

            stored = alerts.update(merged)

        logger.info(
            f"Updated alert {alert_id}",
            extra={
                "event": "alert.updated",
                "alert_id": alert_id,
                "owner_id": owner_id,
                "fields": sorted(values),
            },
        )
        return stored

    def toggle_alert(self, owner_id: str, alert_id: str) -> Alert:
        """Flip the alert between active and inactive."""
        with self.session_scope() as session:
            self._require_job_seeker(UserRepository(session), owner_id, "update alerts")
            alerts = AlertRepository(session)
            current = self._owned_alert(alerts, owner_id, alert_id, "update")
            stored = alerts.update(current.model_copy(update={"is_active": not current.is_active}))

        logger.info(
            f"Alert {alert_id} is now {'active' if stored.is_active else 'inactive'}",
            extra={"event": "alert.toggled", "alert_id": alert_id, "is_active": stored.is_active},
        )
        return stored

    def delete_alert(self, owner_id: str, alert_id: str) -> None:
        with self.session_scope() as session:
            self._require_job_seeker(UserRepository(session), owner_id, "delete alerts")
            alerts = AlertRepository(session)
            self._owned_alert(alerts, owner_id, alert_id, "delete")
            alerts.delete(alert_id)

        logger.info(
            f"Deleted alert {alert_id}",
            extra={"event": "alert.deleted", "alert_id": alert_id, "owner_id": owner_id},
        )

    @staticmethod
    def _parse(model, data):
        if isinstance(data, model):
            return data
        try:
            return model.model_validate(data or {})
        except ValidationError as e:
            raise AlertValidationError("Invalid alert", _validation_messages(e)) from e

    @staticmethod
    def _require_job_seeker(users: UserRepository, owner_id: str, action: str) -> User:
        user = users.get_by_id(owner_id)
        if user is None or not user.is_job_seeker:
            raise AlertAccessDeniedError(f"Access denied. Only job seekers can {action}.")
        return user

    @staticmethod
    def _owned_alert(alerts: AlertRepository, owner_id: str, alert_id: str, verb: str) -> Alert:
        alert = alerts.get_by_id(alert_id)
        if alert is None:
            raise AlertNotFoundError("Alert not found")
        if alert.owner_id != owner_id:
            raise AlertAccessDeniedError(f"Access denied. You can only {verb} your own alerts.")
        return alert


def _dump(values: Dict[str, Any]) -> Dict[str, Any]:
    """Turn nested pydantic values into plain data for re-validation."""
    plain: Dict[str, Any] = {}
    for key, value in values.items():
        if hasattr(value, "model_dump"):
            plain[key] = value.model_dump()
        elif isinstance(value, list):
            plain[key] = [getattr(item, "value", item) for item in value]
        else:
            plain[key] = getattr(value, "value", value)
    return plain
