"""Dispatcher — decides per cycle whether inputs come from hardware or a log.

Usage (record mode):
    from cyclereplay import Dispatcher, LogWriter

    with Dispatcher(sink=LogWriter("match_12.cylog")) as dispatcher:
        drive = DriveSubsystem(dispatcher)
        while robot_running():
            drive.periodic()            # calls dispatcher.process("Drive", inputs, read)
            dispatcher.end_cycle()

Usage (replay mode):
    with Dispatcher(replay_source=LogReader("match_12.cylog")) as dispatcher:
        drive = DriveSubsystem(dispatcher)
        while dispatcher.has_next_cycle():
            drive.periodic()            # inputs restored from the log
            dispatcher.end_cycle()

The mode is fixed when the dispatcher is constructed. Switching between
record and replay mid-run is not supported.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol

from cyclereplay.inputs import LoggableInputs
from cyclereplay.table import LogTable, LogTableTypeError, LogType

logger = logging.getLogger(__name__)


class LogSink(Protocol):
    """Durable destination for recorded tables."""

    def open(self) -> None: ...

    def write(self, cycle: int, prefix: str, table: LogTable) -> None: ...

    def close(self) -> None: ...


class ReplaySource(Protocol):
    """Previously recorded tables, addressed by (cycle, prefix) only."""

    def open(self) -> None: ...

    def read(self, cycle: int, prefix: str) -> LogTable: ...

    @property
    def num_cycles(self) -> int: ...

    def close(self) -> None: ...


class Dispatcher:
    """Routes every input bundle through record or replay once per cycle.

    Construct exactly one per run and pass it to each subsystem.

    Args:
        sink: Where recorded tables go in record mode. Optional; without a
            sink, inputs are still read from hardware but not persisted.
        replay_source: Recorded log to replay. Supplying one puts the
            dispatcher in replay mode for its whole lifetime.
    """

    def __init__(
        self,
        sink: LogSink | None = None,
        replay_source: ReplaySource | None = None,
    ) -> None:
        if sink is not None and replay_source is not None:
            raise ValueError("A dispatcher either records to a sink or replays a source, not both.")

        self._sink = sink
        self._replay_source = replay_source
        self._replay_active = replay_source is not None
        self._cycle = 0
        self._key_types: dict[str, LogType] = {}
        self._started = False
        self._closed = False

    @property
    def replay_active(self) -> bool:
        """True if inputs are read back from a log instead of hardware."""
        return self._replay_active

    @property
    def cycle(self) -> int:
        """Index of the cycle currently being processed."""
        return self._cycle

    def start(self) -> None:
        """Open the sink or replay source."""
        if self._started:
            raise RuntimeError("Dispatcher already started.")
        if self._sink is not None:
            self._sink.open()
        if self._replay_source is not None:
            self._replay_source.open()
        self._started = True
        logger.debug("Dispatcher started (replay=%s)", self._replay_active)

    def process(
        self,
        prefix: str,
        inputs: LoggableInputs,
        read_hardware: Callable[[], None] | None = None,
    ) -> None:
        """Record or replay one input bundle for the current cycle.

        In record mode, read_hardware (if given) refreshes the bundle from
        live hardware before it is serialized and written. In replay mode
        the bundle is restored from the log and read_hardware is never
        called.

        Args:
            prefix: Stable namespace for the bundle's keys, e.g. "DriverStation".
            inputs: The bundle to record or restore.
            read_hardware: The subsystem's hardware-read step. Must not raise.
        """
        if not self._started:
            self.start()

        if self._replay_active:
            assert self._replay_source is not None
            table = self._replay_source.read(self._cycle, prefix)
            inputs.restore(table)
            return

        if read_hardware is not None:
            read_hardware()
        table = LogTable()
        inputs.serialize(table)
        self._check_key_types(prefix, table)
        if self._sink is not None:
            self._sink.write(self._cycle, prefix, table)

    def _check_key_types(self, prefix: str, table: LogTable) -> None:
        """A key keeps the type it was first recorded with for the whole run.

        The whole table is checked before any new key is registered.
        """
        new_keys = {}
        for key, value in table.items():
            full_key = f"{prefix}/{key}"
            known = self._key_types.get(full_key)
            if known is None:
                new_keys[full_key] = value.type
            elif known is not value.type:
                raise LogTableTypeError(
                    f"'{full_key}' was recorded as {known.value}, "
                    f"now written as {value.type.value} at cycle {self._cycle}"
                )
        self._key_types.update(new_keys)

    def end_cycle(self) -> None:
        """Finish the current cycle and advance to the next one."""
        self._cycle += 1

    def has_next_cycle(self) -> bool:
        """Whether the replay source has a record at or after the current cycle.

        Always True in record mode.
        """
        if not self._replay_active:
            return True
        assert self._replay_source is not None
        if not self._started:
            self.start()
        return self._cycle < self._replay_source.num_cycles

    def close(self) -> None:
        """Finalize the sink or replay source. Safe to call twice."""
        if self._closed or not self._started:
            return
        if self._sink is not None:
            self._sink.close()
        if self._replay_source is not None:
            self._replay_source.close()
        self._closed = True
        logger.debug("Dispatcher closed after %d cycles", self._cycle)

    # Context manager support
    def __enter__(self) -> Dispatcher:
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        mode = "replay" if self._replay_active else "record"
        return f"Dispatcher(mode={mode}, cycle={self._cycle})"
