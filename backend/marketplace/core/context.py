"""
Execution context passed explicitly into services.

Holds the execution mode and the clock so that tests can switch dev mode or
freeze time without touching process-wide state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from marketplace.core.config import Settings
from marketplace.models.enums import ExecutionMode
from marketplace.utils.datetime_utils import now_utc


@dataclass(frozen=True)
class ExecutionContext:
    mode: ExecutionMode = ExecutionMode.LIVE
    clock: Callable[[], datetime] = field(default=now_utc)

    @property
    def is_dev(self) -> bool:
        return self.mode == ExecutionMode.DEV

    def now(self) -> datetime:
        return self.clock()

    @classmethod
    def from_settings(cls, settings: Settings) -> ExecutionContext:
        return cls(mode=ExecutionMode(settings.EXECUTION_MODE))
