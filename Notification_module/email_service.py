"""
SMTP email delivery with Jinja2 HTML templates.
Sending is skipped (with a warning) when EMAIL_USER / EMAIL_PASSWORD are not configured.
"""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import Settings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


class EmailService:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.template_env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"])
        )

    def render_template(self, template_name: str, **context: Any) -> str:
        template = self.template_env.get_template(template_name)
        return template.render(**context)

    def send_email(self, to_email: str, subject: str, html_content: str) -> bool:
        """
        Send an HTML email. Returns False when email is not configured.
        SMTP errors propagate to the caller.
        """
        if not self.settings.email_enabled:
            logger.warning("Email service not configured - skipping email send")
            return False

        msg = MIMEMultipart()
        msg["From"] = self.settings.EMAIL_FROM
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(html_content, "html"))

        with smtplib.SMTP(self.settings.EMAIL_HOST, self.settings.EMAIL_PORT) as server:
            server.starttls()
            server.login(self.settings.EMAIL_USER, self.settings.EMAIL_PASSWORD)
            server.sendmail(self.settings.EMAIL_USER, to_email, msg.as_string())

        logger.info(f"Email sent | Subject: {subject}")
        return True

    def send_template(self, to_email: str, subject: str, template_name: str, context: Dict[str, Any]) -> bool:
        html_content = self.render_template(template_name, **context)
        return self.send_email(to_email, subject, html_content)
