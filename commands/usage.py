"""
Usage Tracker
-------------
Single place for the "when is a use counted" policy.

A use is counted once per execute call, right after the executor
returned a result, whatever the exit code. Spawn failures and
parameter errors are not counted.
"""

from datetime import datetime
from typing import Callable, Optional

from .model import Command
from .registry import CommandRegistry, utc_now


class UsageTracker:
    """Records executions through the registry."""

    def __init__(
        self,
        registry: CommandRegistry,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._registry = registry
        self._clock = clock or utc_now

    def on_executed(self, command_id: str) -> Command:
        return self._registry.record_usage(command_id, self._clock())
