from __future__ import annotations

import logging

from sqlalchemy import select

from clinic_records.core.errors import NotFound
from clinic_records.models import Reminder
from clinic_records.schemas.reminder import ReminderCreate
from clinic_records.services.audit import log_event, snapshot_model
from clinic_records.services.store import ClinicStore

logger = logging.getLogger(__name__)


def get_reminder(store: ClinicStore, reminder_id: int) -> Reminder:
    reminder = store.db.get(Reminder, reminder_id)
    if not reminder:
        raise NotFound("Reminder", reminder_id)
    return reminder


def list_reminders(store: ClinicStore, *, include_completed: bool = True) -> list[Reminder]:
    stmt = select(Reminder).order_by(Reminder.created_at, Reminder.id)
    if not include_completed:
        stmt = stmt.where(Reminder.completed.is_(False))
    return list(store.db.scalars(stmt))


def add_reminder(store: ClinicStore, payload: ReminderCreate) -> Reminder:
    reminder = Reminder(
        text=payload.text.strip(),
        created_by=payload.created_by,
        created_by_id=payload.created_by_id,
        completed=False,
        created_at=store.now(),
    )
    store.db.add(reminder)
    store.db.flush()
    log_event(
        store.db,
        actor=store.actor,
        action="reminder.created",
        entity_type="reminder",
        entity_id=reminder.id,
        after_obj=reminder,
    )
    store.commit()
    logger.info("Reminder %s added by %s.", reminder.id, reminder.created_by)
    return reminder


def toggle_reminder(store: ClinicStore, reminder_id: int) -> Reminder:
    reminder = get_reminder(store, reminder_id)
    before = snapshot_model(reminder)
    reminder.completed = not reminder.completed
    store.db.flush()
    log_event(
        store.db,
        actor=store.actor,
        action="reminder.toggled",
        entity_type="reminder",
        entity_id=reminder.id,
        before_data=before,
        after_obj=reminder,
    )
    store.commit()
    logger.info(
        "Reminder %s marked %s.", reminder.id, "done" if reminder.completed else "open"
    )
    return reminder


def delete_reminder(store: ClinicStore, reminder_id: int) -> None:
    reminder = get_reminder(store, reminder_id)
    log_event(
        store.db,
        actor=store.actor,
        action="reminder.deleted",
        entity_type="reminder",
        entity_id=reminder.id,
        before_obj=reminder,
    )
    store.db.delete(reminder)
    store.commit()
    logger.info("Reminder %s deleted.", reminder_id)
