from __future__ import annotations

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from .settings import Settings, settings as default_settings


def send_email(subject: str, body: str, cfg: Settings = default_settings) -> bool:
    """Send an email if SMTP settings are configured.

    Environment variables:
      - EDGESYNC_ENABLE_EMAIL=true
      - EDGESYNC_SMTP_HOST / EDGESYNC_SMTP_PORT
      - EDGESYNC_SMTP_USER / EDGESYNC_SMTP_PASSWORD
      - EDGESYNC_EMAIL_FROM / EDGESYNC_EMAIL_TO
    """
    if not cfg.enable_email:
        return False
    if not all([cfg.smtp_host, cfg.smtp_port, cfg.smtp_user, cfg.smtp_password, cfg.email_from, cfg.email_to]):
        return False

    msg = MIMEMultipart()
    msg["From"] = cfg.email_from
    msg["To"] = cfg.email_to
    msg["Subject"] = subject
    msg.attach(MIMEText(body, "plain"))

    try:
        server = smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=10)
        try:
            server.starttls()
            server.login(cfg.smtp_user, cfg.smtp_password)
            server.sendmail(cfg.email_from, [cfg.email_to], msg.as_string())
        finally:
            server.quit()
        return True
    except (smtplib.SMTPException, OSError):
        return False
