"""Unit tests for SMTP client wrapper.

Tests the SMTPClient for:
- Connection handling (SMTP and SMTP_SSL)
- STARTTLS negotiation and authentication
- Timeout propagation
- Error wrapping
- Recipient validation and sender address building
"""

import smtplib
from email.message import EmailMessage
from unittest.mock import MagicMock, Mock

import pytest

from job_alerts.config.environment import EnvironmentConfig
from job_alerts.notifications.models import SMTPDeliveryError
from job_alerts.notifications.smtp_client import (
    SMTPClient,
    build_sender_address,
    validate_recipient,
)


@pytest.fixture
def env_config_with_auth():
    """Environment config with SMTP authentication."""
    return EnvironmentConfig(
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user="alerts@example.com",
        smtp_pass="secret123",
        smtp_sender_name="HireSphere Job Alerts",
    )


@pytest.fixture
def env_config_without_auth():
    """Environment config without SMTP authentication."""
    return EnvironmentConfig(smtp_host="smtp.example.com", smtp_port=25)


@pytest.fixture
def env_config_implicit_tls():
    """Environment config for implicit TLS (port 465)."""
    return EnvironmentConfig(
        smtp_host="smtp.example.com",
        smtp_port=465,
        smtp_user="alerts@example.com",
        smtp_pass="apppassword",
    )


@pytest.fixture
def sample_message():
    msg = EmailMessage()
    msg["Subject"] = "New Job Matches Found - HireSphere Job Alert"
    msg["From"] = "alerts@example.com"
    msg["To"] = "seeker@example.com"
    msg.set_content("Test body")
    return msg


def test_smtp_client_send_with_starttls(env_config_with_auth, sample_message):
    """Test sending email with STARTTLS (port 587)."""
    mock_smtp = MagicMock()
    mock_factory = Mock(return_value=mock_smtp)

    client = SMTPClient(smtp_factory=mock_factory, timeout=12)
    client.send(sample_message, env_config_with_auth, use_tls=True)

    mock_factory.assert_called_once_with("smtp.example.com", 587, timeout=12)
    mock_smtp.starttls.assert_called_once()
    mock_smtp.login.assert_called_once_with("alerts@example.com", "secret123")
    mock_smtp.send_message.assert_called_once_with(sample_message)
    mock_smtp.quit.assert_called_once()


def test_smtp_client_send_with_implicit_tls(env_config_implicit_tls, sample_message):
    """Port 465 uses SMTP_SSL and never STARTTLS."""
    mock_smtp_ssl = MagicMock()
    mock_ssl_factory = Mock(return_value=mock_smtp_ssl)
    mock_factory = Mock()

    client = SMTPClient(smtp_factory=mock_factory, smtp_ssl_factory=mock_ssl_factory)
    client.send(sample_message, env_config_implicit_tls, use_tls=True)

    mock_factory.assert_not_called()
    args, kwargs = mock_ssl_factory.call_args
    assert args == ("smtp.example.com", 465)
    assert kwargs["timeout"] == 10
    assert "context" in kwargs
    mock_smtp_ssl.starttls.assert_not_called()
    mock_smtp_ssl.login.assert_called_once_with("alerts@example.com", "apppassword")
    mock_smtp_ssl.send_message.assert_called_once_with(sample_message)
    mock_smtp_ssl.quit.assert_called_once()


def test_smtp_client_send_without_auth(env_config_without_auth, sample_message):
    """Test sending email without authentication or TLS."""
    mock_smtp = MagicMock()
    mock_factory = Mock(return_value=mock_smtp)

    client = SMTPClient(smtp_factory=mock_factory)
    client.send(sample_message, env_config_without_auth, use_tls=False)

    mock_smtp.starttls.assert_not_called()
    mock_smtp.login.assert_not_called()
    mock_smtp.send_message.assert_called_once_with(sample_message)
    mock_smtp.quit.assert_called_once()


def test_smtp_client_wraps_smtp_exception(env_config_with_auth, sample_message):
    mock_smtp = MagicMock()
    mock_smtp.send_message.side_effect = smtplib.SMTPRecipientsRefused({"seeker@example.com": (550, b"no")})
    client = SMTPClient(smtp_factory=Mock(return_value=mock_smtp))

    with pytest.raises(SMTPDeliveryError, match="SMTP error"):
        client.send(sample_message, env_config_with_auth)

    mock_smtp.quit.assert_called_once()


def test_smtp_client_wraps_network_error(env_config_with_auth, sample_message):
    client = SMTPClient(smtp_factory=Mock(side_effect=OSError("Network unreachable")))

    with pytest.raises(SMTPDeliveryError, match="Network error"):
        client.send(sample_message, env_config_with_auth)


def test_smtp_client_wraps_timeout(env_config_with_auth, sample_message):
    mock_smtp = MagicMock()
    mock_smtp.login.side_effect = TimeoutError("timed out")
    client = SMTPClient(smtp_factory=Mock(return_value=mock_smtp))

    with pytest.raises(SMTPDeliveryError):
        client.send(sample_message, env_config_with_auth)

    mock_smtp.send_message.assert_not_called()


def test_smtp_client_quit_error_is_ignored(env_config_with_auth, sample_message):
    mock_smtp = MagicMock()
    mock_smtp.quit.side_effect = smtplib.SMTPServerDisconnected("gone")
    client = SMTPClient(smtp_factory=Mock(return_value=mock_smtp))

    client.send(sample_message, env_config_with_auth)

    mock_smtp.send_message.assert_called_once()


class TestValidateRecipient:
    def test_valid_address(self):
        assert validate_recipient(" seeker@example.com ") == "seeker@example.com"

    @pytest.mark.parametrize("address", ["", "   ", None])
    def test_empty_address(self, address):
        with pytest.raises(ValueError, match="empty"):
            validate_recipient(address)

    @pytest.mark.parametrize("address", ["not-an-email", "missing-at.example.com", "two@@example.com"])
    def test_malformed_address(self, address):
        with pytest.raises(ValueError, match="Invalid recipient"):
            validate_recipient(address)


def test_build_sender_address(env_config_with_auth):
    assert build_sender_address(env_config_with_auth) == "HireSphere Job Alerts <alerts@example.com>"


def test_build_sender_address_without_user(env_config_without_auth):
    assert build_sender_address(env_config_without_auth) == "HireSphere Job Alerts <no-reply@smtp.example.com>"
