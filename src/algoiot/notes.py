"""
ARC-2 note field builder.

Data attached to a transaction is written to its note field in the JSON
flavour of ARC-2: ``<app-name>:j{"label":value,...}``. Only a few value types
are accepted, each range-checked against the fixed-width type a sensor would
report.
"""

import json
import math
from typing import Union

from .types import (
    APP_NAME_MAX_LENGTH,
    MAX_NOTE_SIZE,
    NOTE_LABEL_MAX_LENGTH,
    NoteError,
)


NoteValue = Union[int, float, str]

_INT_RANGES = {
    "int8": (-(1 << 7), (1 << 7) - 1),
    "uint8": (0, (1 << 8) - 1),
    "int16": (-(1 << 15), (1 << 15) - 1),
    "uint16": (0, (1 << 16) - 1),
    "int32": (-(1 << 31), (1 << 31) - 1),
    "uint32": (0, (1 << 32) - 1),
}


def _check_label(label: str, what: str = "Label") -> None:
    if not isinstance(label, str) or not label:
        raise NoteError(f"{what} must be a non-empty string")
    if len(label) > NOTE_LABEL_MAX_LENGTH:
        raise NoteError(
            f"{what} too long: {len(label)} characters (maximum {NOTE_LABEL_MAX_LENGTH})"
        )


class NoteBuilder:
    """
    Accumulates labelled fields for an ARC-2 JSON note.

    Fields keep insertion order; adding a label twice replaces its value.
    A field that would push the rendered note to ``MAX_NOTE_SIZE`` bytes or
    more is rejected and the note is left as it was.
    """

    def __init__(self, app_name: str) -> None:
        _check_label(app_name, "App name")
        if len(app_name) > APP_NAME_MAX_LENGTH:
            raise NoteError(f"App name too long (maximum {APP_NAME_MAX_LENGTH})")
        self.app_name = app_name
        self._fields: dict[str, NoteValue] = {}

    @property
    def fields(self) -> dict[str, NoteValue]:
        return dict(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def clear(self) -> None:
        self._fields.clear()

    def _render(self, fields: dict[str, NoteValue]) -> bytes:
        body = json.dumps(fields, separators=(",", ":"), ensure_ascii=False)
        return f"{self.app_name}:j{body}".encode("utf-8")

    def render(self) -> bytes:
        """The note bytes, or ``b""`` if no field was added."""
        if not self._fields:
            return b""
        return self._render(self._fields)

    def _add(self, label: str, value: NoteValue) -> None:
        _check_label(label)
        candidate = dict(self._fields)
        candidate[label] = value
        size = len(self._render(candidate))
        if size >= MAX_NOTE_SIZE:
            raise NoteError(
                f"Note too long: {size} bytes (must stay below {MAX_NOTE_SIZE})"
            )
        self._fields = candidate

    def _add_int(self, label: str, value: int, kind: str) -> None:
        low, high = _INT_RANGES[kind]
        if isinstance(value, bool) or not isinstance(value, int):
            raise NoteError(f"{label}: {kind} value must be an integer")
        if not low <= value <= high:
            raise NoteError(f"{label}: {value} out of range for {kind}")
        self._add(label, value)

    def add_int8(self, label: str, value: int) -> None:
        self._add_int(label, value, "int8")

    def add_uint8(self, label: str, value: int) -> None:
        self._add_int(label, value, "uint8")

    def add_int16(self, label: str, value: int) -> None:
        self._add_int(label, value, "int16")

    def add_uint16(self, label: str, value: int) -> None:
        self._add_int(label, value, "uint16")

    def add_int32(self, label: str, value: int) -> None:
        self._add_int(label, value, "int32")

    def add_uint32(self, label: str, value: int) -> None:
        self._add_int(label, value, "uint32")

    def add_float(self, label: str, value: float) -> None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise NoteError(f"{label}: float value must be a number")
        if not math.isfinite(value):
            raise NoteError(f"{label}: float value must be finite")
        self._add(label, float(value))

    def add_short_string(self, label: str, value: str) -> None:
        if not isinstance(value, str):
            raise NoteError(f"{label}: value must be a string")
        if len(value) > NOTE_LABEL_MAX_LENGTH:
            raise NoteError(
                f"{label}: string too long (maximum {NOTE_LABEL_MAX_LENGTH} characters)"
            )
        self._add(label, value)
