import logging
import uuid
from typing import Callable
from sqlalchemy.ext.asyncio import AsyncSession
from recoverylab.core.base import utcnow, as_utc
from recoverylab.core.db import store_errors
from recoverylab.core.errors import ValidationError, NotFoundError
from recoverylab.modules.contacts.models import Contact
from recoverylab.modules.contacts.repository import ContactRepository
from recoverylab.modules.contacts.schemas import (
    ContactCreate, ContactUpdate, NOTIFICATION_TYPES, DEFAULT_SUBSCRIPTIONS,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "relationship", "role")
CLINICAL_ROLES = {"doctor", "physical_therapist"}

def _blank(v) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())

def default_subscriptions(supplied: dict | None) -> dict[str, bool]:
    subs = {t: t in DEFAULT_SUBSCRIPTIONS for t in NOTIFICATION_TYPES}
    subs.update(supplied or {})
    return subs

def default_preferences(role: str, supplied: dict | None) -> dict:
    prefs = {
        "frequency": "realtime",
        "data_access_level": "full_medical" if role in CLINICAL_ROLES else "basic",
    }
    prefs.update({k: v for k, v in (supplied or {}).items() if v is not None})
    return prefs

def sort_newest_first(rows):
    return sorted(rows, key=lambda r: as_utc(r.created_at), reverse=True)

class ContactService:
    """Care-team contacts for a patient: registration, listing, partial update, deletion."""

    def __init__(self, session: AsyncSession, on_registered: Callable[[Contact], None] | None = None):
        self.session = session
        self.repo = ContactRepository(session)
        self.on_registered = on_registered

    async def register(self, user_id: str, payload: ContactCreate) -> Contact:
        if _blank(user_id):
            raise ValidationError("user_id is required", field="user_id")
        for f in REQUIRED_FIELDS:
            if _blank(getattr(payload, f)):
                raise ValidationError(f"{f} is required", field=f)
        phone = None if _blank(payload.phone) else payload.phone.strip()
        email = None if _blank(payload.email) else str(payload.email)
        if not phone and not email:
            raise ValidationError("At least one of phone or email is required", field="phone")

        channels = {"sms": bool(phone), "email": bool(email)}
        channels.update(payload.channels or {})
        prefs_in = payload.preferences.model_dump(exclude_none=True) if payload.preferences else None

        now = utcnow()
        with store_errors("contacts.create"):
            obj = await self.repo.create(
                user_id=user_id,
                name=payload.name.strip(),
                relationship=payload.relationship.strip(),
                role=payload.role,
                organization=payload.organization or None,
                license_number=payload.license_number or None,
                phone=phone,
                email=email,
                notifications=default_subscriptions(payload.notifications),
                channels=channels,
                preferences=default_preferences(payload.role, prefs_in),
                created_at=now,
                updated_at=now,
            )
            await self.session.commit()
        logger.info(f"Registered contact {obj.id} ({obj.role}) for user {user_id}")

        if self.on_registered:
            try:
                self.on_registered(obj)
            except Exception:
                logger.exception(f"Could not queue welcome message for contact {obj.id}")
        return obj

    async def list(self, user_id: str) -> list[Contact]:
        with store_errors("contacts.list"):
            rows = await self.repo.list_for_user(user_id)
        return sort_newest_first(rows)

    async def get(self, contact_id: uuid.UUID) -> Contact:
        with store_errors("contacts.get"):
            obj = await self.repo.get(contact_id)
        if not obj:
            raise NotFoundError("Contact", str(contact_id))
        return obj

    async def update(self, contact_id: uuid.UUID, payload: ContactUpdate | dict) -> Contact:
        if isinstance(payload, dict):
            payload = ContactUpdate.model_validate(payload)
        obj = await self.get(contact_id)
        data = payload.model_dump(exclude_unset=True)

        for f in REQUIRED_FIELDS:
            if f in data and _blank(data[f]):
                raise ValidationError(f"{f} cannot be empty", field=f)

        changes: dict = {}
        for k in ("name", "relationship", "role", "organization", "license_number"):
            if k in data:
                changes[k] = data[k].strip() if isinstance(data[k], str) else data[k]

        phone = obj.phone
        email = obj.email
        if "phone" in data:
            phone = None if _blank(data["phone"]) else data["phone"].strip()
            changes["phone"] = phone
        if "email" in data:
            email = None if _blank(data["email"]) else str(data["email"])
            changes["email"] = email
        if not phone and not email:
            raise ValidationError("At least one of phone or email is required", field="phone")

        if "notifications" in data and data["notifications"] is not None:
            changes["notifications"] = {**obj.notifications, **data["notifications"]}

        explicit_channels = data.get("channels") or {}
        channels = {**obj.channels, **explicit_channels}
        # a changed address re-derives its flag unless the caller set it
        if "phone" in data and "sms" not in explicit_channels:
            channels["sms"] = bool(phone)
        if "email" in data and "email" not in explicit_channels:
            channels["email"] = bool(email)
        if channels != obj.channels:
            changes["channels"] = channels

        if data.get("preferences"):
            prefs = {k: v for k, v in data["preferences"].items() if v is not None}
            changes["preferences"] = {**obj.preferences, **prefs}

        changes["updated_at"] = utcnow()
        with store_errors("contacts.update"):
            obj = await self.repo.update(obj, **changes)
            await self.session.commit()
        return obj

    async def delete(self, contact_id: uuid.UUID) -> None:
        obj = await self.get(contact_id)
        with store_errors("contacts.delete"):
            await self.repo.delete(obj)
            await self.session.commit()
        logger.info(f"Deleted contact {contact_id}")
