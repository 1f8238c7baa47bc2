import logging
from recoverylab.platform.ports.messaging import SmsSender, EmailSender

log = logging.getLogger("messaging.noop")

# NOOP delivery: the message is only logged; swap with a real adapter via settings

class LoggingSmsSender(SmsSender):
    async def send_sms(self, to: str, text: str) -> None:
        log.info(f"[NOOP SMS] to={to} text={text[:80]!r}")

class LoggingEmailSender(EmailSender):
    async def send_email(self, to: str, subject: str, body: str) -> None:
        log.info(f"[NOOP EMAIL] to={to} subject={subject!r}")
