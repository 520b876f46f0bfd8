# Overview: One normalization function for every identifier crossing the HTTP boundary.

from __future__ import annotations

from typing import Any, NewType

from .validation import ValidationError

EntityId = NewType("EntityId", int)


def normalize_id(value: Any) -> EntityId:
    """
    Normalize a user/order identifier from a path param, JSON body or session.

    Accepts positive ints and strings of ASCII digits (whitespace stripped).
    Everything else (bools, floats, signs, blanks, hex ids) is rejected with
    ValidationError so routes can answer 400 instead of guessing.
    """
    if isinstance(value, bool):
        raise ValidationError("Invalid identifier")
    if isinstance(value, int):
        if value <= 0:
            raise ValidationError("Invalid identifier")
        return EntityId(value)
    if isinstance(value, str):
        s = value.strip()
        if s and s.isascii() and s.isdigit():
            parsed = int(s)
            if parsed > 0:
                return EntityId(parsed)
    raise ValidationError("Invalid identifier")
