# forest/errors.py
import logging
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


class ForestError(Exception):
    """Base class for failures surfaced to the user as plain text."""


class InputError(ForestError):
    pass


class NotFoundError(ForestError):
    pass


class PersistenceError(ForestError):
    pass


@dataclass
class OperationResult:
    summary: str
    payload: Any = None
    ok: bool = True

    def __str__(self) -> str:
        return self.summary


def error_text(exc: ForestError) -> str:
    label = {
        InputError: "Invalid input",
        NotFoundError: "Not found",
        PersistenceError: "Save failed",
    }.get(type(exc), "Error")
    return f"{label}: {exc}"


def run_operation(fn: Callable[..., OperationResult], *args, **kwargs) -> OperationResult:
    """Call an operation and turn a ForestError into a failed result."""
    try:
        return fn(*args, **kwargs)
    except ForestError as exc:
        logger.info("%s failed: %s", getattr(fn, "__name__", fn), exc)
        return OperationResult(summary=error_text(exc), ok=False)
