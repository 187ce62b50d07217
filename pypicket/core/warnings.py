"""Keep the Python warnings raised during an analysis so they can be reported with its results."""

from __future__ import annotations

import inspect
import logging
import warnings
from functools import wraps
from threading import Lock

from ..settings import get_logger_name

logger = logging.getLogger(get_logger_name())


def _as_record(warning: warnings.WarningMessage) -> dict:
    return {
        "message": str(warning.message),
        "category": warning.category.__name__,
        "filename": warning.filename,
        "lineno": warning.lineno,
    }


class WarningCollectorMixin:
    """Holds the warnings raised by the public methods of a :func:`capture_warnings` class."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._warning_records: list[dict] = []
        self._warning_lock = Lock()

    def get_captured_warnings(self) -> list[dict]:
        """The recorded warnings, oldest first."""
        with self._warning_lock:
            return list(self._warning_records)

    def clear_captured_warnings(self) -> None:
        with self._warning_lock:
            self._warning_records = []

    def _record_warnings(self, caught: list[warnings.WarningMessage]) -> None:
        records = [_as_record(w) for w in caught]
        for record in records:
            logger.warning("%s: %s", record["category"], record["message"])
        with self._warning_lock:
            self._warning_records += records


def _recording(method):
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                return method(self, *args, **kwargs)
            finally:
                self._record_warnings(caught)

    return wrapper


def capture_warnings(cls: type) -> type:
    """Class decorator: warnings raised by the public methods defined on the class are recorded on
    the instance and logged instead of being shown."""
    for name, member in list(vars(cls).items()):
        if not name.startswith("_") and inspect.isfunction(member):
            setattr(cls, name, _recording(member))
    return cls
