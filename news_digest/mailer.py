"""
SMTP delivery of a compiled digest.

The message carries a plain-text fallback and the rendered HTML body as
``multipart/alternative``. Submission uses implicit TLS (SMTP_SSL) by default
or STARTTLS when ``mail.use_ssl`` is off. Transport failures propagate.
"""

from __future__ import annotations

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import logging
import smtplib
import ssl

from .config import MailConfig
from .logging_utils import log_event
from .output.renderer import render_email
from .types import Digest


logger = logging.getLogger(__name__)


def digest_subject(digest: Digest) -> str:
    return f"Daily News Digest - {digest.date}"


def render_plain_text(digest: Digest, web_url: str | None = None) -> str:
    lines = [f"DAILY NEWS DIGEST - {digest.date}", ""]
    if web_url:
        lines += [f"View this newsletter in your browser: {web_url}", ""]
    lines += [digest.intro_text, ""]
    for category in digest.categories:
        lines.append(category.category.upper())
        if category.commentary:
            lines.append(category.commentary)
        for article in category.articles:
            lines.append(f"- {article.title} ({article.source})")
            lines.append(f"  {article.url}")
            if article.summary:
                lines.append(f"  {article.summary}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


class Mailer:
    """Sends digests through an authenticated SMTP relay."""

    def __init__(self, cfg: MailConfig):
        self.cfg = cfg

    def build_message(self, digest: Digest, web_url: str | None = None) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = digest_subject(digest)
        msg["From"] = self.cfg.email_from or ""
        msg["To"] = self.cfg.email_to or ""
        msg.attach(MIMEText(render_plain_text(digest, web_url), "plain", "utf-8"))
        msg.attach(MIMEText(render_email(digest, web_url=web_url), "html", "utf-8"))
        return msg

    def send(self, digest: Digest, web_url: str | None = None) -> None:
        msg = self.build_message(digest, web_url)
        context = ssl.create_default_context()

        if self.cfg.use_ssl:
            server = smtplib.SMTP_SSL(
                self.cfg.smtp_host,
                self.cfg.smtp_port,
                context=context,
                timeout=self.cfg.timeout_seconds,
            )
        else:
            server = smtplib.SMTP(self.cfg.smtp_host, self.cfg.smtp_port, timeout=self.cfg.timeout_seconds)

        with server:
            if not self.cfg.use_ssl:
                server.starttls(context=context)
            server.login(self.cfg.smtp_user, self.cfg.smtp_password)
            server.send_message(msg)

        log_event(
            logger,
            "Digest email sent",
            event="mail_sent",
            recipient=self.cfg.email_to,
            subject=msg["Subject"],
        )
