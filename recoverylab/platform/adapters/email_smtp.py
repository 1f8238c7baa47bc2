"""
SMTP email adapter.

Plain-text mail over STARTTLS. smtplib is blocking, so each send runs in a
worker thread and opens its own connection.
"""
import asyncio
import logging
import smtplib
from email.mime.text import MIMEText
from email.utils import formataddr
from recoverylab.platform.ports.messaging import EmailSender

log = logging.getLogger(__name__)


class SmtpEmailSender(EmailSender):
    def __init__(
        self,
        server: str,
        port: int,
        username: str | None,
        password: str | None,
        from_email: str,
        from_name: str,
        timeout: float = 10.0,
    ):
        if not (username and password):
            raise RuntimeError("SMTP_USERNAME and SMTP_PASSWORD are required for EMAIL_PROVIDER=smtp")
        self.server = server
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout

    async def send_email(self, to: str, subject: str, body: str) -> None:
        await asyncio.to_thread(self._send, to, subject, body)

    def _send(self, to: str, subject: str, body: str) -> None:
        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = formataddr((self.from_name, self.from_email))
        msg["To"] = to

        with smtplib.SMTP(self.server, self.port, timeout=self.timeout) as server:
            server.starttls()
            server.login(self.username, self.password)
            server.send_message(msg)
        log.debug(f"SMTP accepted email to={to} subject={subject!r}")
