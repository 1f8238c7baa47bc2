import logging
from dataclasses import dataclass, field
from recoverylab.core.config import Settings
from recoverylab.core.crypto import TokenCipher
from recoverylab.platform.ports.messaging import SmsSender, EmailSender
from recoverylab.platform.ports.calendar import CalendarProvider
from recoverylab.platform.ports.event_bus import EventBusPort
from recoverylab.platform.adapters.messaging_noop import LoggingSmsSender, LoggingEmailSender
from recoverylab.platform.adapters.sms_twilio import TwilioSmsSender
from recoverylab.platform.adapters.email_smtp import SmtpEmailSender
from recoverylab.platform.adapters.calendar_google import GoogleCalendarProvider
from recoverylab.platform.adapters.calendar_memory import InMemoryCalendarProvider
from recoverylab.platform.adapters.bus_noop import NoopEventBus
from recoverylab.platform.adapters.bus_redis import RedisEventBus

log = logging.getLogger(__name__)

@dataclass
class Providers:
    """External collaborators, built once at startup and handed to the services."""
    sms: SmsSender
    email: EmailSender
    calendar: CalendarProvider
    event_bus: EventBusPort
    token_cipher: TokenCipher
    timeout_seconds: float = 10.0
    broadcast_concurrency: int = 8
    _closables: list = field(default_factory=list, repr=False)

    async def close(self) -> None:
        for c in self._closables:
            try:
                await c.close()
            except Exception:
                log.exception("Failed to close provider %s", c.__class__.__name__)

def build_providers(settings: Settings) -> Providers:
    """Construct every adapter selected in settings; raises RuntimeError on missing credentials."""
    closables = []

    if settings.SMS_PROVIDER == "twilio":
        sms = TwilioSmsSender(
            settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN, settings.TWILIO_FROM_NUMBER,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )
    else:
        sms = LoggingSmsSender()

    if settings.EMAIL_PROVIDER == "smtp":
        email = SmtpEmailSender(
            settings.SMTP_SERVER, settings.SMTP_PORT,
            settings.SMTP_USERNAME, settings.SMTP_PASSWORD,
            settings.FROM_EMAIL, settings.FROM_NAME,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )
    else:
        email = LoggingEmailSender()

    if settings.CALENDAR_PROVIDER == "google":
        calendar = GoogleCalendarProvider(settings.GOOGLE_CALENDAR_API_BASE)
        closables.append(calendar)
    else:
        calendar = InMemoryCalendarProvider()

    if settings.EVENT_BUS_PROVIDER == "redis":
        bus = RedisEventBus(
            settings.REDIS_URL, settings.REDIS_STREAM, settings.REDIS_STREAM_MAXLEN,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )
        closables.append(bus)
    else:
        bus = NoopEventBus()

    cipher = TokenCipher.from_settings(settings)

    log.info(
        "Providers ready sms=%s email=%s calendar=%s bus=%s",
        sms.__class__.__name__, email.__class__.__name__,
        calendar.__class__.__name__, bus.__class__.__name__,
    )
    return Providers(
        sms=sms,
        email=email,
        calendar=calendar,
        event_bus=bus,
        token_cipher=cipher,
        timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS,
        broadcast_concurrency=settings.BROADCAST_CONCURRENCY,
        _closables=closables,
    )
