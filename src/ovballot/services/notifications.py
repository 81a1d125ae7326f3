"""
Magic-link email delivery.

Competitors never log in; they receive a link of the form
``<frontend_url>/ballots/<magic_token>``. This module renders that email
and delivers it through a ``Notifier``.

Delivery is per-recipient and best effort: ``send_magic_links`` keeps
going after a failed recipient and reports every failure alongside the
number of emails sent. Partial success is a normal outcome.

Usage:
    from ovballot.services.notifications import SmtpNotifier, send_magic_links

    notifier = SmtpNotifier.from_settings(settings)
    report = send_magic_links(session, tournament, tournament.competitors, notifier)
    print(report.summary())
"""

import logging
import smtplib
from dataclasses import dataclass, field
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Iterable, Optional, Protocol

from jinja2 import Environment, FileSystemLoader, select_autoescape
from sqlalchemy.orm import Session

from ovballot.config import Settings, settings
from ovballot.db.models import Competitor, Tournament
from ovballot.errors import InternalError
from ovballot.services.magic_link import magic_link_url

logger = logging.getLogger(__name__)

templates_path = Path(__file__).parent.parent / "web" / "templates"
_email_env = Environment(
    loader=FileSystemLoader(templates_path),
    autoescape=select_autoescape(["html"]),
)


class NotificationError(Exception):
    """Raised when a single email could not be delivered."""
    pass


class Notifier(Protocol):
    """Outbound mail transport. Raises NotificationError on failure."""

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        ...


class SmtpNotifier:
    """Send HTML email via SMTP (STARTTLS + login)."""

    def __init__(
        self,
        host: Optional[str],
        port: int,
        username: Optional[str],
        password: Optional[str],
        use_tls: bool = True,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_email = from_email or username
        self.from_name = from_name

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "SmtpNotifier":
        return cls(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
            from_email=config.email_from,
            from_name=config.email_from_name,
        )

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        if not self.host or not self.from_email:
            raise NotificationError("SMTP configuration incomplete. Check environment variables.")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>" if self.from_name else self.from_email
        msg["To"] = to_address
        msg.attach(MIMEText(html_body, "html"))

        try:
            with smtplib.SMTP(self.host, self.port) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP error: {e}") from e


@dataclass
class DeliveryReport:
    """Outcome of a batch magic-link delivery."""
    total_competitors: int = 0
    emails_sent: int = 0
    errors: list[str] = field(default_factory=list)

    def summary(self) -> str:
        line = f"Magic links sent: {self.emails_sent}/{self.total_competitors}"
        if self.errors:
            line += f" ({len(self.errors)} failed)"
        return line

    def to_dict(self) -> dict:
        payload = {
            "emailsSent": self.emails_sent,
            "totalCompetitors": self.total_competitors,
        }
        if self.errors:
            payload["errors"] = self.errors
        return payload


def magic_link_subject(tournament: Tournament) -> str:
    return f"{settings.email_subject_prefix} - {tournament.name}"


def render_magic_link_email(competitor: Competitor, tournament: Tournament) -> str:
    """Render the HTML body of a competitor's magic-link email."""
    template = _email_env.get_template("email/magic_link.html")
    return template.render(
        competitor=competitor,
        tournament=tournament,
        link_url=magic_link_url(competitor.magic_token),
        valid_years=settings.magic_link_valid_years,
        signature=settings.email_from_name,
    )


def _deliver(competitor: Competitor, tournament: Tournament, notifier: Notifier, now: datetime) -> None:
    notifier.send(
        competitor.email,
        magic_link_subject(tournament),
        render_magic_link_email(competitor, tournament),
    )
    competitor.magic_link_sent_at = now


def send_magic_link(
    session: Session,
    competitor: Competitor,
    notifier: Notifier,
    now: Optional[datetime] = None,
) -> None:
    """
    (Re)send one competitor's magic link.

    Raises:
        InternalError: if the transport fails (detail is logged)
    """
    now = now or datetime.utcnow()
    try:
        _deliver(competitor, competitor.tournament, notifier, now)
    except NotificationError as e:
        logger.error("Failed to send magic link to %s: %s", competitor.email, e)
        raise InternalError("Failed to resend magic link") from e
    session.flush()
    logger.info("Magic link resent to competitor %s", competitor.id)


def send_magic_links(
    session: Session,
    tournament: Tournament,
    competitors: Iterable[Competitor],
    notifier: Notifier,
    now: Optional[datetime] = None,
) -> DeliveryReport:
    """
    Email every competitor their magic link, collecting failures.

    A failed recipient is recorded as "First Last: reason" and does not
    stop delivery to the rest.
    """
    now = now or datetime.utcnow()
    report = DeliveryReport()

    for competitor in competitors:
        report.total_competitors += 1
        try:
            _deliver(competitor, tournament, notifier, now)
        except NotificationError as e:
            logger.warning("Failed to send email to %s: %s", competitor.email, e)
            report.errors.append(f"{competitor.full_name}: {e}")
            continue
        report.emails_sent += 1

    session.flush()
    logger.info("%s for tournament %s", report.summary(), tournament.id)
    return report
