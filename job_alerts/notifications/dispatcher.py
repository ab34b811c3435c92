"""Notification dispatcher: renders a digest and sends it by e-mail.

``send`` reports every problem through the returned NotificationResult and
never raises. There is no retry here: a failed delivery leaves the alert's
watermark untouched, so the next cycle picks the same jobs up again.
"""

import logging
from email.message import EmailMessage
from typing import Optional

from job_alerts.config.environment import EnvironmentConfig
from job_alerts.config.models import EmailConfig
from job_alerts.domain.models import User
from job_alerts.logging import get_logger

from .models import Digest, NotificationResult, NotificationTemplateError, SMTPDeliveryError
from .smtp_client import SMTPClient, build_sender_address, validate_recipient
from .templates import TemplateRenderer, build_digest_context

logger = get_logger(__name__, component="notification")


class NotificationDispatcher:
    """Delivers digests to job seekers over SMTP."""

    def __init__(
        self,
        env_config: EnvironmentConfig,
        email_config: Optional[EmailConfig] = None,
        template_renderer: Optional[TemplateRenderer] = None,
        smtp_client: Optional[SMTPClient] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        """
        Args:
            env_config: SMTP host, port, credentials and sender name
            email_config: TLS, timeout and subject settings
            template_renderer: Template renderer (creates default if None)
            smtp_client: SMTP client (creates one with the configured timeout if None)
            logger_instance: Logger (uses module logger if None)
        """
        self.env_config = env_config
        self.email_config = email_config or EmailConfig()
        self.template_renderer = template_renderer or TemplateRenderer()
        self.smtp_client = smtp_client or SMTPClient(timeout=self.email_config.timeout_seconds)
        self.logger = logger_instance or logger

    def send(self, recipient: User, digest: Digest) -> NotificationResult:
        """Render and send ``digest`` to ``recipient``.

        Returns:
            NotificationResult with status "sent" or "failed"
        """
        alert_id = digest.alert.id

        def failed(error: str) -> NotificationResult:
            return NotificationResult(
                alert_id=alert_id,
                recipient=recipient.email,
                status="failed",
                job_count=digest.job_count,
                error=error,
            )

        try:
            address = validate_recipient(recipient.email)
        except ValueError as e:
            self.logger.error(
                f"Cannot send digest for alert {alert_id}: {e}",
                extra={"event": "notification.invalid_recipient", "alert_id": alert_id},
            )
            return failed(str(e))

        try:
            rendered = self.template_renderer.render(
                build_digest_context(digest, self.email_config.subject)
            )
        except NotificationTemplateError as e:
            self.logger.error(
                f"Template rendering failed for alert {alert_id}: {e}",
                extra={"event": "notification.render.failed", "alert_id": alert_id},
            )
            return failed(str(e))

        message = EmailMessage()
        message["Subject"] = rendered["subject"]
        message["From"] = build_sender_address(self.env_config)
        message["To"] = address
        message.set_content(rendered["text_body"])
        message.add_alternative(rendered["html_body"], subtype="html")

        try:
            self.smtp_client.send(message, self.env_config, self.email_config.use_tls)
        except SMTPDeliveryError as e:
            self.logger.error(
                f"Digest delivery failed for alert {alert_id} to {address}: {e}",
                extra={
                    "event": "notification.send.failure",
                    "alert_id": alert_id,
                    "error_type": type(e).__name__,
                },
            )
            return failed(str(e))
        except Exception as e:
            self.logger.error(
                f"Unexpected error sending digest for alert {alert_id}: {e}",
                exc_info=True,
                extra={"event": "notification.send.failure", "alert_id": alert_id},
            )
            return failed(str(e))

        self.logger.info(
            f"Digest with {digest.job_count} job(s) sent to {address} for alert {alert_id}",
            extra={
                "event": "notification.send.success",
                "alert_id": alert_id,
                "job_count": digest.job_count,
                "personalized": digest.personalization is not None,
            },
        )
        return NotificationResult(
            alert_id=alert_id,
            recipient=address,
            status="sent",
            job_count=digest.job_count,
        )
