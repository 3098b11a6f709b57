"""Email notification service for newly discovered articles.

Sends a plain-text digest to a tenant when a scrape stores new articles that
matched their keywords.

When ``smtp_host`` is not configured in :class:`~news_radar.config.settings.Settings`,
every send method silently no-ops and logs at ``DEBUG`` level.  This means
the service is safe to import and instantiate in all environments, including
CI and local development without an SMTP server.

Usage::

    from news_radar.core.email_service import get_email_service

    await get_email_service().send_new_articles(
        user_email="analyst@example.org",
        source_name="The Record",
        articles=new_articles,
    )
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from functools import lru_cache
from typing import Any, Optional

import structlog

from news_radar.config.settings import Settings, get_settings

logger = structlog.get_logger(__name__)
_stdlib_logger = logging.getLogger(__name__)

#: Summary characters included per article in the digest.
_SUMMARY_PREVIEW_CHARS = 300


class EmailService:
    """Sends notification emails via SMTP using ``fastapi-mail``.

    The service does not open any network connection at construction time.
    When ``smtp_host`` is ``None`` (the default), :meth:`is_configured`
    returns ``False`` and all send methods immediately return.

    Args:
        settings: Application settings instance.  Defaults to the global
            cached settings singleton if omitted.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._mail: Any = None

        if self._settings.smtp_host:
            from fastapi_mail import ConnectionConfig, FastMail  # noqa: PLC0415

            config = ConnectionConfig(
                MAIL_USERNAME=self._settings.smtp_username or "",
                MAIL_PASSWORD=self._settings.smtp_password or "",
                MAIL_FROM=self._settings.smtp_from_address,
                MAIL_PORT=self._settings.smtp_port,
                MAIL_SERVER=self._settings.smtp_host,
                MAIL_STARTTLS=self._settings.smtp_starttls,
                MAIL_SSL_TLS=self._settings.smtp_ssl,
                USE_CREDENTIALS=bool(self._settings.smtp_username),
                VALIDATE_CERTS=True,
            )
            self._mail = FastMail(config)

    def is_configured(self) -> bool:
        """Return ``True`` if SMTP is configured."""
        return self._mail is not None

    async def send_new_articles(
        self,
        user_email: str,
        source_name: str,
        articles: Sequence[Any],
    ) -> bool:
        """Send a digest of newly stored articles for one source.

        Args:
            user_email: Recipient email address.
            source_name: Display name of the scraped source.
            articles: Stored :class:`~news_radar.core.models.Article` objects
                (anything with ``title``, ``summary``, ``url`` and
                ``detected_keywords`` attributes).

        Returns:
            ``True`` if a message was handed to the SMTP server.
        """
        if not articles:
            return False
        if not self.is_configured():
            _stdlib_logger.debug(
                "email_service: SMTP not configured, skipping send_new_articles "
                "source=%s articles=%d",
                source_name,
                len(articles),
            )
            return False

        subject = f"[{self._settings.app_name}] {len(articles)} new article(s) from {source_name}"
        body = format_article_digest(source_name, articles)
        sent = await self._send(recipient=user_email, subject=subject, body=body)
        if sent:
            logger.info(
                "email_service: sent new_articles",
                source=source_name,
                articles=len(articles),
                recipient=user_email,
            )
        return sent

    async def _send(self, recipient: str, subject: str, body: str) -> bool:
        """Send a plain-text email via fastapi-mail.

        Failures are logged at WARNING level and reported as ``False`` so that
        an SMTP outage never fails a scrape job.
        """
        try:
            from fastapi_mail import MessageSchema, MessageType  # noqa: PLC0415

            message = MessageSchema(
                subject=subject,
                recipients=[recipient],
                body=body,
                subtype=MessageType.plain,
            )
            await self._mail.send_message(message)
        except Exception as exc:  # noqa: BLE001
            _stdlib_logger.warning(
                "email_service: failed to send email to %s subject=%r: %s",
                recipient,
                subject,
                exc,
            )
            return False
        return True


def format_article_digest(source_name: str, articles: Sequence[Any]) -> str:
    """Render the plain-text body listing each article with its keywords."""
    lines = [f"New articles matching your keywords from {source_name}:", ""]
    for index, article in enumerate(articles, start=1):
        lines.append(f"{index}. {article.title}")
        summary = (getattr(article, "summary", None) or "").strip()
        if summary:
            lines.append(f"   {summary[:_SUMMARY_PREVIEW_CHARS]}")
        lines.append(f"   {article.url}")
        keywords = getattr(article, "detected_keywords", None) or []
        if keywords:
            lines.append(f"   Keywords: {', '.join(keywords)}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


@lru_cache(maxsize=1)
def get_email_service() -> EmailService:
    """Return the cached EmailService singleton."""
    return EmailService(settings=get_settings())
