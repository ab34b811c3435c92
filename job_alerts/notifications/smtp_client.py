"""SMTP client wrapper for email delivery.

Thin wrapper around smtplib: port 465 uses implicit TLS, any other port
plain SMTP with optional STARTTLS. Every socket operation is bounded by the
configured timeout.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Callable, Optional

from email_validator import EmailNotValidError, validate_email

from job_alerts.config.environment import EnvironmentConfig

from .models import SMTPDeliveryError

logger = logging.getLogger(__name__)

IMPLICIT_TLS_PORT = 465


class SMTPClient:
    """Sends EmailMessage objects; factories are injectable for tests."""

    def __init__(
        self,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
        timeout: float = 10,
    ):
        """
        Args:
            smtp_factory: Callable creating SMTP connections (default smtplib.SMTP)
            smtp_ssl_factory: Callable creating SMTP_SSL connections (default smtplib.SMTP_SSL)
            timeout: Socket timeout in seconds for connect and every command
        """
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL
        self.timeout = timeout

    def send(
        self,
        message: EmailMessage,
        env_config: EnvironmentConfig,
        use_tls: bool = True,
    ) -> None:
        """Deliver ``message``.

        Raises:
            SMTPDeliveryError: If connecting, authenticating or sending fails
        """
        host, port = env_config.smtp_host, env_config.smtp_port
        smtp = None
        try:
            if port == IMPLICIT_TLS_PORT:
                logger.debug(f"Connecting to {host}:{port} with implicit TLS")
                smtp = self.smtp_ssl_factory(
                    host, port, timeout=self.timeout, context=ssl.create_default_context()
                )
            else:
                logger.debug(f"Connecting to {host}:{port}")
                smtp = self.smtp_factory(host, port, timeout=self.timeout)
                if use_tls:
                    smtp.starttls(context=ssl.create_default_context())

            if env_config.smtp_user and env_config.smtp_pass:
                smtp.login(env_config.smtp_user, env_config.smtp_pass)

            smtp.send_message(message)
            logger.debug(f"Message sent to {message['To']}")

        except smtplib.SMTPException as e:
            raise SMTPDeliveryError(f"SMTP error during message delivery: {e}") from e
        except OSError as e:
            raise SMTPDeliveryError(f"Network error during SMTP connection: {e}") from e
        finally:
            if smtp is not None:
                try:
                    smtp.quit()
                except (smtplib.SMTPException, OSError) as e:
                    logger.warning(f"Error closing SMTP connection: {e}")


def validate_recipient(address: str) -> str:
    """Validate one e-mail address and return its normalized form.

    Raises:
        ValueError: If the address is empty or malformed
    """
    if not address or not address.strip():
        raise ValueError("Recipient e-mail address is empty")
    try:
        return validate_email(address.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValueError(f"Invalid recipient e-mail address '{address}': {e}") from e


def build_sender_address(env_config: EnvironmentConfig) -> str:
    """Return the From header, e.g. ``HireSphere Job Alerts <alerts@example.com>``."""
    return f"{env_config.smtp_sender_name} <{env_config.sender_address}>"
