from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ErrorKind(StrEnum):
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    OUTSIDE_SERVICE_WINDOW = "outside_service_window"
    NO_CAPACITY = "no_capacity"


@dataclass(frozen=True)
class Failure:
    """Expected, terminal outcome of a use case. Returned instead of raised."""

    kind: ErrorKind
    message: str


def validation_error(message: str) -> Failure:
    return Failure(ErrorKind.VALIDATION, message)


def not_found(entity: str, entity_id: str) -> Failure:
    return Failure(ErrorKind.NOT_FOUND, f"{entity} with id {entity_id} not found")


def outside_service_window(message: str = "Requested time is outside service window") -> Failure:
    return Failure(ErrorKind.OUTSIDE_SERVICE_WINDOW, message)


def no_capacity(message: str = "No available table fits party size at requested time") -> Failure:
    return Failure(ErrorKind.NO_CAPACITY, message)
