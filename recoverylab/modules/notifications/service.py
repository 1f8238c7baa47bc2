import asyncio
import logging
import uuid
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from recoverylab.core.base import utcnow, as_utc
from recoverylab.core.db import store_errors
from recoverylab.core.errors import SendError
from recoverylab.modules.contacts.models import Contact
from recoverylab.modules.contacts.service import ContactService
from recoverylab.modules.notifications.models import NotificationRecord
from recoverylab.modules.notifications.repository import NotificationLedger
from recoverylab.modules.notifications.schemas import NotificationOut
from recoverylab.platform.ports.event_bus import NOTIFICATIONS_BROADCAST
from recoverylab.platform.provider_registry import Providers

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 150
SMS_MAX_CHARS = 1600
DEFAULT_HISTORY_LIMIT = 50

ROLE_LABELS = {
    "family": "a family member",
    "doctor": "a doctor",
    "physical_therapist": "a physical therapist",
    "insurance_provider": "an insurance contact",
    "caregiver": "a caregiver",
    "other": "a care-team member",
}

def default_subject(type_: str) -> str:
    return f"RecoveryLab: {type_.replace('_', ' ')}"

def render_sms(subject: str, message: str) -> str:
    text = f"{subject}: {message}" if subject else message
    return text[:SMS_MAX_CHARS]

def render_email(contact: Contact, subject: str, message: str) -> tuple[str, str]:
    label = ROLE_LABELS.get(contact.role, ROLE_LABELS["other"])
    body = (
        f"Hello {contact.name},\n\n"
        f"{message}\n\n"
        "---\n"
        f"RecoveryLab | You are receiving this as {label} on a patient's care team.\n"
        "To change what you receive, contact the patient who added you."
    )
    return subject, body

def candidate_channels(contact: Contact) -> list[str]:
    channels = contact.channels or {}
    out = []
    if channels.get("sms") and contact.phone:
        out.append("sms")
    if channels.get("email") and contact.email:
        out.append("email")
    return out


class NotificationsService:
    def __init__(self, session: AsyncSession, providers: Providers):
        self.session = session
        self.providers = providers
        self.ledger = NotificationLedger(session)

    async def broadcast(self, user_id: str, type_: str, subject: str, message: str) -> list[NotificationOut]:
        """
        Fan one notification out to every subscribed contact on every usable channel.

        Each (contact, channel) attempt gets its own ledger row, written as
        ``pending`` before any send and moved to ``sent`` or ``failed`` after.
        Individual send failures are recorded, never raised; only a failure to
        read contacts or to write the pending rows fails the call.
        """
        contacts = await ContactService(self.session).list(user_id)

        attempts: list[tuple[Contact, str]] = []
        for c in contacts:
            if not (c.notifications or {}).get(type_):
                continue
            for channel in candidate_channels(c):
                attempts.append((c, channel))

        if not attempts:
            logger.info(f"No contacts with {type_} enabled for user {user_id}")
            await self._publish(user_id, type_, [])
            return []

        now = utcnow()
        preview = message[:PREVIEW_CHARS]
        records = [
            NotificationRecord(
                id=uuid.uuid4(),
                user_id=user_id,
                contact_id=c.id,
                contact_name=c.name,
                contact_role=c.role,
                type=type_,
                channel=channel,
                status="pending",
                message_preview=preview,
                created_at=now,
            )
            for c, channel in attempts
        ]
        with store_errors("notifications.ledger.append"):
            await self.ledger.append(records)
            await self.session.commit()

        sem = asyncio.Semaphore(self.providers.broadcast_concurrency)

        async def attempt(contact: Contact, channel: str):
            async with sem:
                err = await self._deliver(contact, channel, subject, message)
                return err, utcnow()

        outcomes = await asyncio.gather(*(attempt(c, ch) for c, ch in attempts))

        for rec, (err, finished_at) in zip(records, outcomes):
            if err is None:
                rec.status = "sent"
                rec.sent_at = finished_at
            else:
                rec.status = "failed"
                rec.error = err.reason

        results = [NotificationOut.model_validate(r) for r in records]
        try:
            await self.session.commit()
        except SQLAlchemyError:
            # rows stay pending; writing them again would duplicate attempts
            await self.session.rollback()
            logger.exception(f"Could not record delivery outcomes for {len(records)} {type_} notifications (user {user_id})")

        await self._publish(user_id, type_, results)
        return results

    async def _deliver(self, contact: Contact, channel: str, subject: str, message: str) -> SendError | None:
        recipient = contact.phone if channel == "sms" else contact.email
        timeout = self.providers.timeout_seconds
        try:
            if channel == "sms":
                send = self.providers.sms.send_sms(contact.phone, render_sms(subject, message))
            else:
                email_subject, body = render_email(contact, subject, message)
                send = self.providers.email.send_email(contact.email, email_subject, body)
            await asyncio.wait_for(send, timeout=timeout)
            return None
        except asyncio.TimeoutError:
            err = SendError(channel, recipient, f"timed out after {timeout:g}s")
        except Exception as e:
            err = SendError(channel, recipient, str(e) or e.__class__.__name__)
        logger.error(f"Failed to send {channel} to {contact.name} ({contact.id}): {err.reason}")
        return err

    async def _publish(self, user_id: str, type_: str, results: list[NotificationOut]) -> None:
        sent = sum(1 for r in results if r.status == "sent")
        value = {"user_id": user_id, "type": type_, "attempts": len(results), "sent": sent, "failed": len(results) - sent}
        try:
            await asyncio.wait_for(
                self.providers.event_bus.publish(topic=NOTIFICATIONS_BROADCAST, key=user_id, value=value),
                timeout=self.providers.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"Publishing {NOTIFICATIONS_BROADCAST} timed out after {self.providers.timeout_seconds:g}s")
        except Exception:
            logger.exception(f"Publishing {NOTIFICATIONS_BROADCAST} failed")

    async def history(self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[NotificationRecord]:
        with store_errors("notifications.history"):
            rows = await self.ledger.list_for_user(user_id)
        rows = sorted(rows, key=lambda r: as_utc(r.created_at), reverse=True)
        return rows[:limit]
