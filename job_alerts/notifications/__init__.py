"""Digest composition and e-mail delivery for job alerts."""

from .composer import DigestComposer, build_personalization_prompt
from .dispatcher import NotificationDispatcher
from .models import (
    Digest,
    DigestJob,
    NotificationError,
    NotificationResult,
    NotificationTemplateError,
    SMTPDeliveryError,
)
from .smtp_client import SMTPClient, build_sender_address, validate_recipient
from .templates import TemplateRenderer, build_digest_context
from .text_generation import (
    GeminiTextGenerator,
    NullTextGenerator,
    TextGenerationError,
    TextGenerator,
    build_text_generator,
)

__all__ = [
    "DigestComposer",
    "build_personalization_prompt",
    "NotificationDispatcher",
    "Digest",
    "DigestJob",
    "NotificationResult",
    "NotificationError",
    "NotificationTemplateError",
    "SMTPDeliveryError",
    "SMTPClient",
    "build_sender_address",
    "validate_recipient",
    "TemplateRenderer",
    "build_digest_context",
    "TextGenerator",
    "NullTextGenerator",
    "GeminiTextGenerator",
    "TextGenerationError",
    "build_text_generator",
]
