"""
Invitation mail over SMTP (STARTTLS on the configured port).
"""

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from urllib.parse import quote

from personaops import config

logger = logging.getLogger("personaops.mailer")


def build_invitation(to_email: str, inviter_email: str = None) -> MIMEMultipart:
    link = f"{config.FRONTEND_URL}/signup?email={quote(to_email, safe='@')}"
    who = inviter_email or "A teammate"
    text = (
        f"{who} invited you to join their PersonaOps workspace.\n\n"
        f"Accept the invitation: {link}\n"
    )
    html_body = (
        f"<p>{html.escape(who)} invited you to join their PersonaOps workspace.</p>"
        f'<p><a href="{html.escape(link)}">Accept the invitation</a></p>'
    )

    msg = MIMEMultipart("alternative")
    msg["Subject"] = "You're invited to PersonaOps"
    msg["From"] = formataddr(("PersonaOps", config.SMTP_FROM))
    msg["To"] = to_email
    msg.attach(MIMEText(text, "plain"))
    msg.attach(MIMEText(html_body, "html"))
    return msg


def send_invitation_email(to_email: str, inviter_email: str = None) -> bool:
    """Send the invitation. Returns False when SMTP is not configured.

    Raises smtplib.SMTPException / OSError on delivery failure.
    """
    if not config.smtp_configured():
        logger.info("SMTP not configured; skipping invitation email to %s", to_email)
        return False

    msg = build_invitation(to_email, inviter_email)
    with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=config.PROVIDER_TIMEOUT) as server:
        server.starttls()
        if config.SMTP_USER:
            server.login(config.SMTP_USER, config.SMTP_PASS)
        server.sendmail(config.SMTP_FROM, [to_email], msg.as_string())
    logger.info("Invitation email sent to %s", to_email)
    return True
