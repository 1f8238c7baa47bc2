from typing import Protocol, runtime_checkable

# Implementations raise on failure; a normal return means the provider accepted the message.

@runtime_checkable
class SmsSender(Protocol):
    async def send_sms(self, to: str, text: str) -> None: ...

@runtime_checkable
class EmailSender(Protocol):
    async def send_email(self, to: str, subject: str, body: str) -> None: ...
