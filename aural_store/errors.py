from __future__ import annotations

from enum import Enum


class StoreErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    ALREADY_EXISTS = "already_exists"
    SELF_REFERENCE_REJECTED = "self_reference_rejected"
    SERIALIZATION_FAILURE = "serialization_failure"


class SerializationError(Exception):
    """Raised when a durable blob cannot be encoded or decoded."""
