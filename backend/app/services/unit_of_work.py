from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class Compensations:
    """Inverse actions for external side effects performed inside a transaction.

    The database half of an operation rolls back with the session; transfers
    already made through external collaborators are undone from this stack,
    newest first.
    """

    def __init__(self):
        self._steps: list[tuple[str, Callable[..., Any], tuple]] = []

    def add(self, label: str, fn: Callable[..., Any], *args) -> None:
        self._steps.append((label, fn, args))

    def clear(self) -> None:
        self._steps.clear()

    def __len__(self) -> int:
        return len(self._steps)

    def unwind(self) -> None:
        steps, self._steps = self._steps, []
        for label, fn, args in reversed(steps):
            try:
                fn(*args)
            except Exception:
                # keep unwinding; the original failure is what the caller sees
                logger.exception("compensation %s failed", label)


@contextmanager
def atomic(s: Session, compensations: Compensations) -> Iterator[None]:
    compensations.clear()
    try:
        yield
        s.commit()
    except Exception:
        compensations.unwind()
        s.rollback()
        raise
    finally:
        compensations.clear()
