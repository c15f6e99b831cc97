"""Synchronous log capture for modules logging through femtologging.

femtologging hands records to a worker thread, so assertions on its handler
output have to wait. Preview modules log through a module-level ``logger``,
which tests swap for a :class:`RecordingLogger` to observe records at once.
"""

from __future__ import annotations

import dataclasses
import typing as typ

if typ.TYPE_CHECKING:
    import pytest


@dataclasses.dataclass(frozen=True, slots=True)
class LogRecord:
    """One captured log call."""

    level: str
    message: str
    exc_info: object | None = None


class RecordingLogger:
    """femtologging-compatible logger that stores every call."""

    def __init__(self) -> None:
        """Initialise with no records."""
        self.records: list[LogRecord] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        """Record the call and return the message."""
        del stack_info
        self.records.append(LogRecord(str(level), message, exc_info))
        return message

    def messages(self, level: str | None = None) -> list[str]:
        """Return captured messages, optionally filtered by level."""
        return [
            record.message
            for record in self.records
            if level is None or record.level == level
        ]


def capture_module_logs(
    monkeypatch: pytest.MonkeyPatch, module_name: str
) -> RecordingLogger:
    """Replace ``<module_name>.logger`` with a recorder for this test."""
    recorder = RecordingLogger()
    monkeypatch.setattr(f"{module_name}.logger", recorder)
    return recorder
