"""Per-task structured log fields.

The fields live in a ``ContextVar``. Tasks started by ``asyncio.gather``
inherit a snapshot of their parent's fields, and anything they bind stays
inside that task.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Mapping

_FIELDS: ContextVar[dict[str, str]] = ContextVar("shelf_log_fields", default={})


def get_context() -> dict[str, str]:
    return dict(_FIELDS.get())


def bind_context(**values: object) -> None:
    """Add fields for the rest of the current task; ``None`` values are skipped."""
    additions = {key: str(value) for key, value in values.items() if value is not None}
    if additions:
        _FIELDS.set({**_FIELDS.get(), **additions})


def clear_context(*keys: str) -> None:
    """Drop the named fields, or every field when no names are given."""
    if not keys:
        _FIELDS.set({})
        return
    _FIELDS.set({key: value for key, value in _FIELDS.get().items() if key not in keys})


@contextmanager
def log_context(values: Mapping[str, object]) -> Iterator[None]:
    """Bind ``values`` for the duration of the block only."""
    token = _FIELDS.set(dict(_FIELDS.get()))
    try:
        bind_context(**{str(key): value for key, value in values.items()})
        yield
    finally:
        _FIELDS.reset(token)
