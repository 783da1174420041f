"""Email notification adapter."""

import asyncio
import html
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import structlog

logger = structlog.get_logger()


@dataclass
class EmailConfig:
    """Email configuration.

    With ``enabled`` False messages are logged instead of sent, which keeps
    local development free of an SMTP relay.
    """

    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    from_email: str = "noreply@darkhorse3pl.com"
    from_name: str = "Dark Horse 3PL"
    use_tls: bool = True
    enabled: bool = False


FOOTER_HTML = """
            <hr style="border: none; border-top: 1px solid #ddd; margin: 30px 0;">
            <p style="color: #666; font-size: 12px;">
                This email was sent by Dark Horse 3PL. Please do not reply to this email.
            </p>
"""

FOOTER_TEXT = "---\nThis email was sent by Dark Horse 3PL. Please do not reply to this email."


class EmailNotifier:
    """Delivers notifications via email (SMTP)."""

    def __init__(self, config: EmailConfig):
        """Initialize the email notifier.

        Args:
            config: Email configuration settings.
        """
        self.config = config

    def send(
        self,
        to_emails: list[str],
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> bool:
        """Send email notification.

        Returns True if the email was sent successfully.
        Note: This is synchronous - use ``deliver`` from async code.
        """
        if not self.config.enabled:
            logger.info("email_suppressed", to=to_emails, subject=subject)
            return True

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{self.config.from_name} <{self.config.from_email}>"
            msg["To"] = ", ".join(to_emails)

            if body_text:
                msg.attach(MIMEText(body_text, "plain"))
            msg.attach(MIMEText(body_html, "html"))

            with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port) as server:
                if self.config.use_tls:
                    server.starttls()

                if self.config.smtp_user and self.config.smtp_password:
                    server.login(self.config.smtp_user, self.config.smtp_password)

                server.sendmail(
                    self.config.from_email,
                    to_emails,
                    msg.as_string(),
                )

            logger.info("email_sent", to=to_emails, subject=subject)
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error("email_error", to=to_emails, subject=subject, error=str(e))
            return False

    async def deliver(
        self,
        to_emails: list[str],
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> bool:
        """Send without blocking the event loop."""
        return await asyncio.to_thread(self.send, to_emails, subject, body_html, body_text)

    async def send_invitation(
        self,
        to_email: str,
        invitation_link: str,
        role: str,
        full_name: str | None = None,
        store_name: str | None = None,
        inviter_name: str | None = None,
        expires_in_hours: int = 72,
    ) -> bool:
        """Send an invitation with its acceptance link."""
        role_label = role.replace("_", " ").title()
        target = f"the {store_name} store" if store_name else "Dark Horse 3PL"
        subject = f"You're invited to join {target} as {role_label}"
        greeting = f"Hello {full_name}," if full_name else "Hello,"
        invited_by = f"{inviter_name} has invited you" if inviter_name else "You have been invited"
        # Names come from users; only the HTML part needs escaping
        greeting_html = html.escape(greeting)
        invited_by_html = html.escape(invited_by)
        target_html = html.escape(target)
        link_html = html.escape(invitation_link, quote=True)

        body_html = f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <h2 style="color: #1a1a2e;">You're invited</h2>

            <p>{greeting_html}</p>
            <p>{invited_by_html} to join {target_html} as <strong>{role_label}</strong>.</p>

            <p style="text-align: center; margin: 30px 0;">
                <a href="{link_html}" style="background: #007bff; color: white;
                padding: 12px 24px; text-decoration: none; border-radius: 5px; font-weight: bold;">
                    Accept Invitation
                </a>
            </p>

            <p>This invitation expires in {expires_in_hours} hours.</p>
{FOOTER_HTML}
        </body>
        </html>
        """

        body_text = f"""
{greeting}

{invited_by} to join {target} as {role_label}.

Accept the invitation: {invitation_link}

This invitation expires in {expires_in_hours} hours.

{FOOTER_TEXT}
        """

        return await self.deliver([to_email], subject, body_html, body_text)

    async def send_salla_connected(
        self,
        to_email: str,
        store_name: str,
        full_name: str | None = None,
    ) -> bool:
        """Tell a store owner their Salla store is connected."""
        subject = f"Salla connected: {store_name}"
        greeting = f"Hello {full_name}," if full_name else "Hello,"
        greeting_html = html.escape(greeting)
        store_html = html.escape(store_name)

        body_html = f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <h2 style="color: #36a64f;">Salla Store Connected</h2>

            <p>{greeting_html}</p>
            <p>Your Salla store <strong>{store_html}</strong> is now connected to
            Dark Horse 3PL. Orders and inventory will start syncing shortly.</p>
{FOOTER_HTML}
        </body>
        </html>
        """

        body_text = f"""
{greeting}

Your Salla store {store_name} is now connected to Dark Horse 3PL.
Orders and inventory will start syncing shortly.

{FOOTER_TEXT}
        """

        return await self.deliver([to_email], subject, body_html, body_text)
