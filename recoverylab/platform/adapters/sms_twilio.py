import asyncio
import logging
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client
from recoverylab.platform.ports.messaging import SmsSender

log = logging.getLogger(__name__)

class TwilioSmsSender(SmsSender):
    def __init__(self, account_sid: str | None, auth_token: str | None, from_number: str | None, timeout: float = 10.0):
        if not (account_sid and auth_token and from_number):
            raise RuntimeError("TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_FROM_NUMBER are required for SMS_PROVIDER=twilio")
        # per-request timeout; wait_for cannot stop the worker thread
        self.client = Client(account_sid, auth_token, http_client=TwilioHttpClient(timeout=timeout))
        self.from_number = from_number

    async def send_sms(self, to: str, text: str) -> None:
        # twilio's REST client is blocking
        message = await asyncio.to_thread(
            self.client.messages.create, body=text, from_=self.from_number, to=to
        )
        log.debug(f"Twilio accepted sms sid={message.sid} to={to}")
