import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from recoverylab.core.errors import NotFoundError, ValidationError
from recoverylab.modules.contacts.schemas import ContactCreate
from recoverylab.modules.contacts.service import ContactService
from recoverylab.modules.notifications.models import NotificationRecord
from recoverylab.modules.notifications.service import NotificationsService


def _payload(**overrides) -> ContactCreate:
    data = {"name": "Ana Ruiz", "relationship": "daughter", "role": "family", "phone": "+15551230000"}
    data.update(overrides)
    return ContactCreate(**data)


async def test_register_applies_defaults(session):
    svc = ContactService(session)
    c = await svc.register("patient-1", _payload(email="ana.ruiz@familymail.org"))

    assert isinstance(c.id, uuid.UUID)
    assert c.notifications["analysis_update"] is True
    assert c.notifications["weekly_summary"] is True
    assert c.notifications["doctor_flag"] is True
    assert c.notifications["medical_report"] is False
    assert c.channels == {"sms": True, "email": True}
    assert c.preferences == {"frequency": "realtime", "data_access_level": "basic"}


async def test_clinical_roles_get_full_medical_access(session):
    svc = ContactService(session)
    doc = await svc.register("patient-1", _payload(role="doctor", name="Dr. Kim", relationship="physician"))
    assert doc.preferences["data_access_level"] == "full_medical"


async def test_register_without_phone_or_email_creates_nothing(session):
    svc = ContactService(session)
    with pytest.raises(ValidationError):
        await svc.register("patient-1", _payload(phone=None))
    assert await svc.list("patient-1") == []


@pytest.mark.parametrize("field", ["name", "relationship", "role"])
async def test_register_requires_identity_fields(session, field):
    svc = ContactService(session)
    with pytest.raises(ValidationError) as exc:
        await svc.register("patient-1", _payload(**{field: None}))
    assert exc.value.field == field


async def test_list_returns_newest_first(session, monkeypatch):
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    stamps = iter(base + timedelta(minutes=i) for i in range(10))
    monkeypatch.setattr("recoverylab.modules.contacts.service.utcnow", lambda: next(stamps))

    svc = ContactService(session)
    first = await svc.register("patient-1", _payload(name="First"))
    second = await svc.register("patient-1", _payload(name="Second"))
    third = await svc.register("patient-1", _payload(name="Third"))
    await svc.register("patient-2", _payload(name="Other patient"))

    listed = await svc.list("patient-1")
    assert [c.id for c in listed] == [third.id, second.id, first.id]


async def test_get_unknown_contact(session):
    with pytest.raises(NotFoundError):
        await ContactService(session).get(uuid.uuid4())


async def test_update_ignores_identity_fields(session):
    svc = ContactService(session)
    c = await svc.register("patient-1", _payload())
    created_at = c.created_at

    updated = await svc.update(
        c.id,
        {"id": str(uuid.uuid4()), "user_id": "someone-else", "created_at": "2000-01-01T00:00:00Z", "name": "Ana R."},
    )
    assert updated.id == c.id
    assert updated.user_id == "patient-1"
    assert updated.created_at == created_at
    assert updated.name == "Ana R."


async def test_update_merges_nested_maps(session):
    svc = ContactService(session)
    c = await svc.register("patient-1", _payload())

    updated = await svc.update(c.id, {"notifications": {"medical_report": True}, "preferences": {"frequency": "weekly_digest"}})
    assert updated.notifications["medical_report"] is True
    assert updated.notifications["analysis_update"] is True
    assert updated.preferences == {"frequency": "weekly_digest", "data_access_level": "basic"}


async def test_adding_email_enables_email_channel(session):
    svc = ContactService(session)
    c = await svc.register("patient-1", _payload())
    assert c.channels["email"] is False

    updated = await svc.update(c.id, {"email": "ana.ruiz@familymail.org"})
    assert updated.channels == {"sms": True, "email": True}


async def test_explicit_channel_flag_wins_over_rederivation(session):
    svc = ContactService(session)
    c = await svc.register("patient-1", _payload())

    updated = await svc.update(c.id, {"email": "ana.ruiz@familymail.org", "channels": {"email": False}})
    assert updated.channels["email"] is False


async def test_update_cannot_remove_last_address(session):
    svc = ContactService(session)
    c = await svc.register("patient-1", _payload())
    with pytest.raises(ValidationError):
        await svc.update(c.id, {"phone": None})


async def test_delete_keeps_ledger_entries(session, providers):
    svc = ContactService(session)
    c = await svc.register("patient-1", _payload())
    await NotificationsService(session, providers).broadcast("patient-1", "analysis_update", "Results", "New results are ready")

    await svc.delete(c.id)

    with pytest.raises(NotFoundError):
        await svc.get(c.id)
    rows = (await session.execute(select(NotificationRecord).where(NotificationRecord.contact_id == c.id))).scalars().all()
    assert len(rows) == 1
    assert rows[0].contact_name == "Ana Ruiz"


async def test_register_hands_contact_to_callback(session):
    seen = []
    svc = ContactService(session, on_registered=seen.append)
    c = await svc.register("patient-1", _payload())
    assert seen == [c]


async def test_callback_failure_does_not_fail_registration(session):
    def boom(_contact):
        raise RuntimeError("queue full")

    svc = ContactService(session, on_registered=boom)
    c = await svc.register("patient-1", _payload())
    assert (await svc.get(c.id)).name == "Ana Ruiz"
