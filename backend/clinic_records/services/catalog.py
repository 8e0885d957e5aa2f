from __future__ import annotations

import logging

from sqlalchemy import func, select

from clinic_records.core.errors import InvalidAmount, NotFound
from clinic_records.models.catalog import ProcedureItem
from clinic_records.schemas.clinical import DiagnosisCode
from clinic_records.services.audit import log_event
from clinic_records.services.store import ClinicStore

logger = logging.getLogger(__name__)

CIE10_CODES: tuple[DiagnosisCode, ...] = (
    DiagnosisCode(code="K02.0", name="Caries limitada al esmalte"),
    DiagnosisCode(code="K02.1", name="Caries de la dentina"),
    DiagnosisCode(code="K04.0", name="Pulpitis"),
    DiagnosisCode(code="K04.1", name="Necrosis de la pulpa"),
    DiagnosisCode(code="K05.0", name="Gingivitis aguda"),
    DiagnosisCode(code="K05.1", name="Gingivitis crónica"),
    DiagnosisCode(code="K08.1", name="Pérdida de dientes debida a accidente"),
    DiagnosisCode(code="K00.0", name="Anodoncia"),
    DiagnosisCode(code="S02.5", name="Fractura de los dientes"),
    DiagnosisCode(code="K03.6", name="Depósitos (acrecentamientos) en los dientes"),
    DiagnosisCode(code="K05.3", name="Periodontitis crónica"),
    DiagnosisCode(code="K07.4", name="Maloclusión, no especificada"),
    DiagnosisCode(code="K02.9", name="Caries dental, no especificada"),
    DiagnosisCode(code="Z01.2", name="Examen odontológico"),
)


def search_diagnostic_codes(query: str | None) -> list[DiagnosisCode]:
    """Case-insensitive substring search over code and name.

    Prefix matches come first; ``sorted`` is stable so table order is kept
    within each group.
    """
    needle = str(query or "").strip().lower()
    if not needle:
        return list(CIE10_CODES)

    matches = [
        entry
        for entry in CIE10_CODES
        if needle in entry.code.lower() or needle in entry.name.lower()
    ]

    def _is_prefix(entry: DiagnosisCode) -> bool:
        return entry.code.lower().startswith(needle) or entry.name.lower().startswith(needle)

    return sorted(matches, key=lambda entry: 0 if _is_prefix(entry) else 1)


def find_diagnostic_code(code: str) -> DiagnosisCode | None:
    wanted = code.strip().upper()
    return next((entry for entry in CIE10_CODES if entry.code == wanted), None)


def list_procedures(store: ClinicStore) -> list[ProcedureItem]:
    return list(store.db.scalars(select(ProcedureItem).order_by(ProcedureItem.id)))


def consultation_reasons(store: ClinicStore) -> list[str]:
    return [item.name for item in list_procedures(store)]


def find_procedure(store: ClinicStore, name: str) -> ProcedureItem | None:
    wanted = name.strip().lower()
    if not wanted:
        return None
    return store.db.scalar(
        select(ProcedureItem)
        .where(func.lower(ProcedureItem.name) == wanted)
        .order_by(ProcedureItem.id)
        .limit(1)
    )


def add_procedure(store: ClinicStore, *, name: str, price_cents: int) -> ProcedureItem:
    cleaned = name.strip()
    if not cleaned:
        raise ValueError("Procedure name is required")
    if price_cents < 0:
        raise InvalidAmount(f"Procedure price cannot be negative ({price_cents})")

    item = ProcedureItem(name=cleaned, price_cents=price_cents)
    store.db.add(item)
    store.db.flush()
    log_event(
        store.db,
        actor=store.actor,
        action="procedure.created",
        entity_type="procedure",
        entity_id=item.id,
        after_obj=item,
    )
    store.commit()
    logger.info("Procedure %s added (%s, %s cents).", item.id, item.name, item.price_cents)
    return item


def remove_procedure(store: ClinicStore, procedure_id: int) -> None:
    item = store.db.get(ProcedureItem, procedure_id)
    if not item:
        raise NotFound("Procedure", procedure_id)
    log_event(
        store.db,
        actor=store.actor,
        action="procedure.deleted",
        entity_type="procedure",
        entity_id=item.id,
        before_obj=item,
    )
    store.db.delete(item)
    store.commit()
    logger.info("Procedure %s removed.", procedure_id)
