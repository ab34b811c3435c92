"""Persistence layer for the job board database.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository classes
    - AlertRepository: job alerts and their watermarks
    - JobRepository: job listing search
    - UserRepository: job seekers and employers

    # Exceptions
    - PersistenceError and its subclasses

Example usage:
    >>> from job_alerts.persistence import init_database, get_session, AlertRepository
    >>> init_database("sqlite:///./data/job_alerts.db")
    >>> with get_session() as session:
    ...     alerts = AlertRepository(session).list_active("daily")
"""

from .database import SessionScope, close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import AlertRepository, JobRepository, UserRepository

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    "SessionScope",
    # Repositories
    "AlertRepository",
    "JobRepository",
    "UserRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
