import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    """Raised when the mail transport could not hand a message over."""


class Mailer:
    """Thin SMTP transport: send(to, subject, body) or raise DeliveryError."""

    def __init__(self, host="localhost", port=1025, username=None, password=None,
                 use_tls=False, sender="noreply@lostfound.local", brand=None, timeout=10):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.brand = brand
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            host=config["SMTP_HOST"],
            port=config["SMTP_PORT"],
            username=config.get("SMTP_USER"),
            password=config.get("SMTP_PASS"),
            use_tls=config.get("SMTP_USE_TLS", False),
            sender=config["EMAIL_SENDER"],
            brand=config.get("MAIL_BRAND"),
        )

    def send(self, to, subject, body, html=None):
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((self.brand, self.sender)) if self.brand else self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))
        if html:
            msg.attach(MIMEText(html, "html"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.sendmail(self.sender, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"❌ Error sending '{subject}' to {to}: {e}")
            raise DeliveryError(str(e)) from e

        logger.info(f"📤 Mail '{subject}' sent to {to} via {self.host}:{self.port}")
