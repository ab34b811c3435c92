"""Unit tests for domain models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from job_alerts.domain.models import (
    Alert,
    AlertCreate,
    AlertFrequency,
    AlertSettings,
    AlertUpdate,
    JobListing,
    JobType,
    SalaryRange,
    User,
    UserType,
    default_alert_name,
)
from tests.helpers import make_job, make_user


class TestDefaultAlertName:
    """Tests for the generated alert label."""

    def test_joins_keywords(self):
        assert default_alert_name(["react", "typescript"]) == "Alert: react, typescript..."

    def test_truncates_to_thirty_characters(self):
        name = default_alert_name(["kubernetes", "terraform", "observability"])
        assert name == "Alert: kubernetes, terraform, observa..."


class TestSalaryRange:
    """Tests for SalaryRange validation."""

    def test_defaults_are_unbounded(self):
        salary = SalaryRange()
        assert salary.currency == "USD"
        assert not salary.is_bounded

    def test_min_greater_than_max_rejected(self):
        with pytest.raises(ValidationError, match="cannot exceed maximum"):
            SalaryRange(min=150000, max=100000)

    def test_zero_max_means_no_upper_bound(self):
        salary = SalaryRange(min=80000, max=0)
        assert salary.is_bounded

    def test_negative_rejected(self):
        with pytest.raises(ValidationError):
            SalaryRange(min=-1)


class TestAlert:
    """Tests for the stored Alert model."""

    def _alert(self, **overrides):
        data = {
            "id": "a1",
            "owner_id": "u1",
            "name": "My alert",
            "keywords": ["react"],
            "created_at": datetime(2025, 11, 1, 12, 0, tzinfo=timezone.utc),
        }
        data.update(overrides)
        return Alert(**data)

    def test_defaults(self):
        alert = self._alert()
        assert alert.frequency == AlertFrequency.DAILY
        assert alert.is_active is True
        assert alert.last_sent_at is None
        assert alert.locations == []

    def test_terms_are_stripped_and_deduplicated(self):
        alert = self._alert(keywords=[" React ", "react", "", "Node  JS"])
        assert alert.keywords == ["React", "Node JS"]

    def test_job_types_are_normalized(self):
        alert = self._alert(job_types=["Full-Time", "contract", "full-time"])
        assert alert.job_types == [JobType.FULL_TIME, JobType.CONTRACT]

    def test_unknown_job_type_rejected(self):
        with pytest.raises(ValidationError):
            self._alert(job_types=["freelance"])

    def test_unknown_frequency_rejected(self):
        with pytest.raises(ValidationError):
            self._alert(frequency="monthly")

    def test_naive_timestamps_become_utc(self):
        alert = self._alert(
            created_at=datetime(2025, 11, 1, 12, 0),
            last_sent_at=datetime(2025, 11, 2, 8, 30),
        )
        assert alert.created_at.tzinfo == timezone.utc
        assert alert.last_sent_at == datetime(2025, 11, 2, 8, 30, tzinfo=timezone.utc)


class TestAlertCreate:
    """Tests for owner input on creation."""

    def test_keywords_required(self):
        with pytest.raises(ValidationError, match="Keywords are required"):
            AlertCreate(keywords=[])

    def test_blank_keywords_rejected(self):
        with pytest.raises(ValidationError, match="Keywords are required"):
            AlertCreate(keywords=["  ", ""])

    def test_missing_keywords_rejected(self):
        with pytest.raises(ValidationError):
            AlertCreate()

    def test_display_name_defaults_from_keywords(self):
        request = AlertCreate(keywords=["python", "django"])
        assert request.display_name == "Alert: python, django..."

    def test_blank_name_uses_default(self):
        request = AlertCreate(name="   ", keywords=["python"])
        assert request.display_name == "Alert: python..."

    def test_explicit_name_kept(self):
        request = AlertCreate(name=" Backend roles ", keywords=["python"])
        assert request.display_name == "Backend roles"


class TestAlertUpdate:
    """Tests for partial updates."""

    def test_all_fields_optional(self):
        update = AlertUpdate()
        assert update.model_fields_set == set()

    def test_empty_keywords_rejected(self):
        with pytest.raises(ValidationError, match="Keywords cannot be empty"):
            AlertUpdate(keywords=[])

    def test_locations_can_be_cleared(self):
        update = AlertUpdate(locations=[])
        assert update.locations == []
        assert "locations" in update.model_fields_set


class TestJobListing:
    """Tests for JobListing display helpers."""

    def test_salary_text(self):
        job = make_job(salary_min=80000, salary_max=120000)
        assert job.salary_text == "80,000 - 120,000 USD"

    def test_salary_text_not_specified(self):
        job = make_job(salary_min=None, salary_max=None)
        assert job.salary_text == "Not specified"

    def test_salary_text_open_ended(self):
        job = make_job(salary_min=50000, salary_max=None, salary_currency="EUR")
        assert job.salary_text == "50,000 - ? EUR"

    def test_display_company_prefers_employer_name(self):
        assert make_job(employer_name="Globex").display_company == "Globex"
        assert make_job(employer_name=None, company="Initech").display_company == "Initech"
        assert make_job(employer_name=None, company=None).display_company == "Unknown employer"

    def test_is_open_case_insensitive(self):
        assert make_job(status="Open").is_open
        assert not make_job(status="closed").is_open

    def test_naive_created_at_becomes_utc(self):
        job = JobListing(id="j", title="t", created_at=datetime(2025, 1, 1))
        assert job.created_at.tzinfo == timezone.utc


class TestUser:
    """Tests for User helpers."""

    def test_greeting_prefers_first_name(self):
        assert make_user(first_name="Ada").greeting_name == "Ada"
        assert make_user(first_name=None, name="Ada Lovelace").greeting_name == "Ada Lovelace"

    def test_wants_email_alerts(self):
        assert make_user().wants_email_alerts
        assert not make_user(alert_settings=AlertSettings(enabled=False)).wants_email_alerts
        assert not make_user(alert_settings=AlertSettings(enabled=True, email=False)).wants_email_alerts

    def test_alert_settings_default_off(self):
        user = User(id="u", email="u@example.com", name="U")
        assert user.alert_settings.enabled is False
        assert user.alert_settings.email is True

    def test_job_seeker_flag(self):
        assert make_user().is_job_seeker
        assert not make_user(user_type=UserType.EMPLOYER).is_job_seeker

    def test_employer_display_name(self):
        employer = User(id="e", email="e@example.com", name="Erin", user_type="employer", company_name="Globex")
        assert employer.employer_display_name == "Globex"
