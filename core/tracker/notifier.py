import logging
import smtplib
from email.mime.text import MIMEText
from typing import List, Optional

logger = logging.getLogger("tracker.notifier")


def format_alert(title: str, new_price: int, target_price: Optional[int], url: str):
    """Subject and plain-text body of a price drop email."""
    subject = f"Price drop: {title} is now NT$ {new_price:,}"
    lines = [
        f"{title}",
        "",
        f"Current price: NT$ {new_price:,}",
    ]
    if target_price is not None:
        lines.append(f"Your target:   NT$ {target_price:,}")
    lines += ["", url]
    return subject, "\n".join(lines)


class LogNotifier:
    """Writes alerts to the log only. Used when email is not configured."""

    def notify(self, title, new_price, target_price, url):
        logger.info(
            "Price drop alert for %s: NT$ %d (target NT$ %s) %s",
            title, new_price, target_price, url,
        )


class EmailNotifier:
    """Sends a plain-text email over SMTP for every alert."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        recipients: List[str],
        user: str = "",
        password: str = "",
        use_ssl: bool = False,
        timeout: int = 30,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.recipients = recipients
        self.user = user
        self.password = password
        self.use_ssl = use_ssl
        self.timeout = timeout

    def notify(self, title, new_price, target_price, url):
        if not self.recipients:
            logger.warning("No recipients configured; skipping alert for %s", title)
            return

        subject, body = format_alert(title, new_price, target_price, url)
        msg = MIMEText(body, "plain", "utf-8")
        msg["From"] = self.sender
        msg["To"] = ", ".join(self.recipients)
        msg["Subject"] = subject

        if self.use_ssl:
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)

        try:
            if not self.use_ssl:
                server.starttls()
            if self.user:
                server.login(self.user, self.password)
            server.sendmail(self.sender, self.recipients, msg.as_string())
            logger.info("Alert email sent to %s: %s", self.recipients, subject)
        finally:
            try:
                server.quit()
            except smtplib.SMTPException:
                pass


def build_notifier(settings):
    """Email alerts when SMTP is configured, log-only alerts otherwise."""
    if settings.SMTP_HOST and settings.EMAIL_FROM:
        return EmailNotifier(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            sender=settings.EMAIL_FROM,
            recipients=settings.email_recipients,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASS,
            use_ssl=settings.SMTP_USE_SSL,
        )
    logger.debug("Email not configured (SMTP_HOST/EMAIL_FROM); alerts go to the log")
    return LogNotifier()
