import pytest
from pydantic import ValidationError
from sqlalchemy import select

from clinic_records.core.errors import NotFound
from clinic_records.models import AuditLog
from clinic_records.schemas.reminder import ReminderCreate
from clinic_records.services.reminders import (
    add_reminder,
    delete_reminder,
    get_reminder,
    list_reminders,
    toggle_reminder,
)


def _add(store, text, **overrides):
    data = {"text": text, "created_by": "Dr. Taboada", "created_by_id": "1"}
    data.update(overrides)
    return add_reminder(store, ReminderCreate(**data))


def test_add_reminder(store):
    reminder = _add(store, "  Comprar insumos de endodoncia ")

    assert reminder.id is not None
    assert reminder.text == "Comprar insumos de endodoncia"
    assert not reminder.completed
    assert reminder.created_by == "Dr. Taboada"
    assert reminder.created_by_id == "1"
    assert store.local(reminder.created_at) == store.now()


def test_blank_reminder_text_is_rejected():
    with pytest.raises(ValidationError):
        ReminderCreate(text="", created_by="Secretaria")


def test_toggle_flips_completed_state(store):
    reminder = _add(store, "Llamar al técnico dental")

    assert toggle_reminder(store, reminder.id).completed
    assert not toggle_reminder(store, reminder.id).completed


def test_list_reminders_in_creation_order(store):
    first = _add(store, "Revisar agenda")
    second = _add(store, "Planificar vacaciones", created_by="Secretaria", created_by_id="2")
    toggle_reminder(store, first.id)

    assert [item.id for item in list_reminders(store)] == [first.id, second.id]
    assert [item.id for item in list_reminders(store, include_completed=False)] == [second.id]


def test_delete_reminder(store):
    reminder = _add(store, "Comprar guantes")

    delete_reminder(store, reminder.id)

    assert list_reminders(store) == []
    with pytest.raises(NotFound):
        get_reminder(store, reminder.id)
    with pytest.raises(NotFound):
        toggle_reminder(store, reminder.id)


def test_reminder_changes_are_audited(store):
    reminder = _add(store, "Comprar guantes")
    toggle_reminder(store, reminder.id)
    delete_reminder(store, reminder.id)

    entries = store.db.scalars(
        select(AuditLog).where(AuditLog.entity_type == "reminder").order_by(AuditLog.id)
    ).all()
    assert [entry.action for entry in entries] == [
        "reminder.created",
        "reminder.toggled",
        "reminder.deleted",
    ]
    assert entries[1].before_json["completed"] is False
    assert entries[1].after_json["completed"] is True
