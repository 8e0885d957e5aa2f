"""Per-tooth condition map: pure edit rules plus the live-record persistence.

Edits never touch the database; they transform a list of
:class:`OdontogramDetail` and always leave it consistent. Only
:func:`save_snapshot` writes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Literal, Sequence, Union

from sqlalchemy import select

from clinic_records.core.clock import to_utc
from clinic_records.core.errors import InvalidTooth, InvariantViolation
from clinic_records.models.clinical import OdontogramRecord, ToothCondition, ToothFace
from clinic_records.schemas.clinical import OdontogramDetail
from clinic_records.services.audit import log_event, snapshot_model
from clinic_records.services.patients import get_patient
from clinic_records.services.store import ClinicStore

logger = logging.getLogger(__name__)

ERASER = "eraser"

Tool = Union[ToothCondition, Literal["eraser"]]
Dentition = Literal["adult", "child"]

WHOLE_TOOTH_CONDITIONS = frozenset(
    {ToothCondition.missing, ToothCondition.bridge, ToothCondition.implant}
)

ADULT_TEETH: tuple[int, ...] = tuple(
    quadrant * 10 + position for quadrant in (1, 2, 3, 4) for position in range(1, 9)
)
CHILD_TEETH: tuple[int, ...] = tuple(
    quadrant * 10 + position for quadrant in (5, 6, 7, 8) for position in range(1, 6)
)
_VALID_TEETH = frozenset(ADULT_TEETH) | frozenset(CHILD_TEETH)


@dataclass(frozen=True)
class EditApplied:
    details: list[OdontogramDetail]


@dataclass(frozen=True)
class EditUnchanged:
    details: list[OdontogramDetail]


@dataclass(frozen=True)
class RequiresConfirmation:
    tooth_number: int
    face: ToothFace
    existing: OdontogramDetail
    message: str


EditOutcome = Union[EditApplied, EditUnchanged, RequiresConfirmation]


def dentition_teeth(kind: Dentition = "adult") -> tuple[int, ...]:
    if kind == "adult":
        return ADULT_TEETH
    if kind == "child":
        return CHILD_TEETH
    raise ValueError(f"Unknown dentition: {kind!r}")


def _check_tooth(tooth_number: int) -> None:
    if tooth_number not in _VALID_TEETH:
        raise InvalidTooth(f"Tooth {tooth_number} is not a valid FDI tooth number")


def _coerce_face(face: ToothFace | str) -> ToothFace:
    try:
        return ToothFace(face)
    except ValueError:
        raise InvalidTooth(f"Unknown tooth face: {face!r}") from None


def _coerce_tool(tool: Tool | str) -> Tool:
    if tool == ERASER:
        return ERASER
    try:
        return ToothCondition(tool)
    except ValueError:
        raise InvalidTooth(f"Unknown odontogram tool: {tool!r}") from None


def _default_note(condition: ToothCondition) -> str:
    return condition.value.replace("_", " ").capitalize()


def assert_consistent(details: Iterable[OdontogramDetail]) -> None:
    seen: set[tuple[int, ToothFace]] = set()
    faces_by_tooth: dict[int, set[ToothFace]] = {}
    for detail in details:
        key = (detail.tooth_number, detail.face)
        if key in seen:
            raise InvariantViolation(
                f"Tooth {detail.tooth_number} has two entries for face {detail.face.value}"
            )
        seen.add(key)
        faces_by_tooth.setdefault(detail.tooth_number, set()).add(detail.face)
    for tooth_number, faces in faces_by_tooth.items():
        if ToothFace.whole in faces and len(faces) > 1:
            raise InvariantViolation(
                f"Tooth {tooth_number} mixes a whole-tooth condition with face conditions"
            )


def apply_edit(
    details: Sequence[OdontogramDetail],
    tooth_number: int,
    face: ToothFace | str,
    tool: Tool | str,
) -> list[OdontogramDetail]:
    _check_tooth(tooth_number)
    face = _coerce_face(face)
    tool = _coerce_tool(tool)

    face = _effective_face(face, tool)
    if face == ToothFace.whole:
        result = [item for item in details if item.tooth_number != tooth_number]
    else:
        # A specific face leaves the tooth no longer in a uniform whole state.
        result = [
            item
            for item in details
            if not (
                item.tooth_number == tooth_number
                and item.face in (face, ToothFace.whole)
            )
        ]

    if tool != ERASER:
        notes = _default_note(tool) if tool in WHOLE_TOOTH_CONDITIONS else ""
        result.append(
            OdontogramDetail(tooth_number=tooth_number, face=face, condition=tool, notes=notes)
        )

    assert_consistent(result)
    return result


def _effective_face(face: ToothFace, tool: Tool) -> ToothFace:
    if tool != ERASER and tool in WHOLE_TOOTH_CONDITIONS:
        return ToothFace.whole
    return face


def _persisted_entry(
    initial: Sequence[OdontogramDetail], tooth_number: int, face: ToothFace
) -> OdontogramDetail | None:
    for item in initial:
        if item.tooth_number != tooth_number:
            continue
        if item.face in (face, ToothFace.whole) or face == ToothFace.whole:
            return item
    return None


def _is_noop(
    current: Sequence[OdontogramDetail], tooth_number: int, face: ToothFace, tool: Tool
) -> bool:
    return any(
        item.tooth_number == tooth_number and item.face == face and item.condition == tool
        for item in current
    )


def confirm_overwrite(
    initial: Sequence[OdontogramDetail],
    current: Sequence[OdontogramDetail],
    tooth_number: int,
    face: ToothFace | str,
    tool: Tool | str,
) -> bool:
    """True when the edit would overwrite a finding persisted before this session."""
    face = _coerce_face(face)
    tool = _coerce_tool(tool)
    if tool == ERASER:
        return False
    face = _effective_face(face, tool)
    if _is_noop(current, tooth_number, face, tool):
        return False
    return _persisted_entry(initial, tooth_number, face) is not None


def edit_tooth(
    current: Sequence[OdontogramDetail],
    initial: Sequence[OdontogramDetail],
    tooth_number: int,
    face: ToothFace | str,
    tool: Tool | str,
    *,
    confirmed: bool = False,
) -> EditOutcome:
    face = _coerce_face(face)
    tool = _coerce_tool(tool)
    if tool != ERASER and _is_noop(current, tooth_number, _effective_face(face, tool), tool):
        return EditUnchanged(details=list(current))

    if not confirmed and confirm_overwrite(initial, current, tooth_number, face, tool):
        target = _effective_face(face, tool)
        existing = _persisted_entry(initial, tooth_number, target)
        return RequiresConfirmation(
            tooth_number=tooth_number,
            face=target,
            existing=existing,
            message=(
                f"Tooth {tooth_number} already has a saved finding "
                f"({existing.condition.value}). Overwrite it?"
            ),
        )
    return EditApplied(details=apply_edit(current, tooth_number, face, tool))


def set_detail_note(
    details: Sequence[OdontogramDetail],
    tooth_number: int,
    face: ToothFace | str,
    note: str,
) -> list[OdontogramDetail]:
    face = _coerce_face(face)
    updated: list[OdontogramDetail] = []
    found = False
    for item in details:
        if item.tooth_number == tooth_number and item.face == face:
            item = item.model_copy(update={"notes": note})
            found = True
        updated.append(item)
    if not found:
        raise InvalidTooth(f"No finding recorded for tooth {tooth_number} face {face.value}")
    return updated


def copy_details(details: Iterable[OdontogramDetail]) -> list[OdontogramDetail]:
    return [item.model_copy(deep=True) for item in details]


def details_to_json(details: Iterable[OdontogramDetail]) -> list[dict]:
    return [item.model_dump(mode="json") for item in details]


def details_from_json(rows: Iterable[dict]) -> list[OdontogramDetail]:
    return [OdontogramDetail.model_validate(row) for row in rows]


def get_record(store: ClinicStore, patient_id: int) -> OdontogramRecord | None:
    return store.db.scalar(
        select(OdontogramRecord).where(OdontogramRecord.patient_id == patient_id)
    )


def load_current(store: ClinicStore, patient_id: int) -> list[OdontogramDetail]:
    record = get_record(store, patient_id)
    if not record:
        return []
    return details_from_json(record.details)


def stage_snapshot(
    store: ClinicStore, patient_id: int, details: Sequence[OdontogramDetail]
) -> OdontogramRecord:
    """Replace the live record inside the current unit of work, without committing."""
    get_patient(store, patient_id)
    assert_consistent(details)
    previous = get_record(store, patient_id)
    before = snapshot_model(previous)
    if previous:
        store.db.delete(previous)
        store.db.flush()
    record = OdontogramRecord(
        patient_id=patient_id,
        updated_at=to_utc(store.now()),
        details=details_to_json(details),
    )
    store.db.add(record)
    store.db.flush()
    log_event(
        store.db,
        actor=store.actor,
        action="odontogram.saved",
        entity_type="odontogram",
        entity_id=record.id,
        before_data=before,
        after_obj=record,
    )
    return record


def save_snapshot(
    store: ClinicStore, patient_id: int, details: Sequence[OdontogramDetail]
) -> OdontogramRecord:
    record = stage_snapshot(store, patient_id, details)
    store.commit()
    logger.info(
        "Odontogram for patient %s saved as %s (%s findings).",
        patient_id,
        record.id,
        len(record.details),
    )
    return record
