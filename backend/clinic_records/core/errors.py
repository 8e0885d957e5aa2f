from __future__ import annotations


class ClinicError(Exception):
    """Base for every error the record engine raises on purpose."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidAmount(ClinicError):
    """A cost, price or payment amount is negative."""


class InvalidSchedule(ClinicError):
    """An appointment was requested in the past, beyond the tolerance window."""


class NotFound(ClinicError):
    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvariantViolation(ClinicError):
    """Internal consistency check failed; indicates a bug, not bad input."""


class InvalidTooth(ClinicError):
    """Unknown tooth number or tooth face."""


class DependentRecordsExist(ClinicError):
    """A patient still owns clinical or financial records and cannot be deleted."""
