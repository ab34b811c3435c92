"""Builds digests from an alert's matches."""

from typing import List, Optional, Sequence

from job_alerts.domain.models import Alert, JobListing, User
from job_alerts.logging import get_logger
from job_alerts.utils.text import truncate_text

from .models import Digest, DigestJob
from .text_generation import NullTextGenerator, TextGenerator

logger = get_logger(__name__, component="composer")

DESCRIPTION_PREVIEW_CHARS = 100


def build_personalization_prompt(recipient: User, jobs: Sequence[JobListing]) -> str:
    """Prompt asking for a short fit explanation per job, as a bulleted list."""
    experience = ", ".join(f"{entry.title} at {entry.company}" for entry in recipient.experience)
    education = ", ".join(f"{entry.degree} from {entry.institution}" for entry in recipient.education)

    profile = (
        f"Skills: {', '.join(recipient.skills)}\n"
        f"Experience: {experience}\n"
        f"Education: {education}"
    )

    summaries = "\n\n".join(
        f"Job Title: {job.title}\n"
        f"Company: {job.display_company}\n"
        f"Description: {(job.description or '')[:DESCRIPTION_PREVIEW_CHARS]}..."
        for job in jobs
    )

    return (
        "I have a job seeker with the following profile:\n"
        f"{profile}\n\n"
        "They have the following job matches:\n"
        f"{summaries}\n\n"
        "For each job, please give a very brief (max 2 sentences) explanation of why this job "
        "might be a good fit for the candidate based on their profile, or what skills they "
        "should highlight in their application.\n"
        "Format as a bulleted list with the job title first, then your brief recommendation."
    )


class DigestComposer:
    """Turns matched jobs into a Digest, optionally with a personalization note."""

    def __init__(
        self,
        text_generator: Optional[TextGenerator] = None,
        frontend_url: str = "http://localhost:3000",
    ):
        self.text_generator = text_generator or NullTextGenerator()
        self.frontend_url = frontend_url.rstrip("/")

    def job_url(self, job_id: str) -> str:
        return f"{self.frontend_url}/jobs/{job_id}"

    @property
    def manage_url(self) -> str:
        return f"{self.frontend_url}/job-alerts"

    def compose(self, recipient: User, alert: Alert, jobs: Sequence[JobListing]) -> Optional[Digest]:
        """Build the digest for ``jobs``; returns None when there are none.

        Text generation problems never prevent the digest: the note is simply
        left out.
        """
        if not jobs:
            return None

        entries: List[DigestJob] = [
            DigestJob(
                job_id=job.id,
                title=job.title,
                employer_name=job.display_company,
                location=job.location or "Not specified",
                job_type=job.type or "Not specified",
                salary_text=job.salary_text,
                url=self.job_url(job.id),
                created_at=job.created_at,
            )
            for job in jobs
        ]

        return Digest(
            recipient=recipient,
            alert=alert,
            jobs=entries,
            personalization=self._personalize(recipient, alert, jobs),
            manage_url=self.manage_url,
        )

    def _personalize(self, recipient: User, alert: Alert, jobs: Sequence[JobListing]) -> Optional[str]:
        if isinstance(self.text_generator, NullTextGenerator):
            return None

        try:
            text = self.text_generator.generate(build_personalization_prompt(recipient, jobs))
        except Exception as e:
            logger.warning(
                f"Personalization failed for alert {alert.id}: {e}",
                extra={
                    "event": "digest.personalization.failed",
                    "alert_id": alert.id,
                    "error_type": type(e).__name__,
                },
            )
            return None

        if not text or not text.strip():
            logger.info(
                f"No personalization produced for alert {alert.id}",
                extra={"event": "digest.personalization.empty", "alert_id": alert.id},
            )
            return None

        return truncate_text(text.strip(), max_length=4000)
