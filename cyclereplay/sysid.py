"""Instrumentation streams for system-identification test routines.

Usage:
    from cyclereplay.sysid import InstrumentationLog, SysIdRoutineLog, SysIdState

    instrumentation = InstrumentationLog(writer)      # any StreamSink
    routine = SysIdRoutineLog("shooter", instrumentation)

    routine.record_state(SysIdState.QUASISTATIC_FORWARD)
    routine.motor("shooter-left").voltage(4.2).angular_position(12.5).angular_velocity(3.1)
    ...
    routine.record_state(SysIdState.NONE)

Each (group, instance, field) maps to exactly one append-only stream named
"<field>-<instance>-<group>", opened on first write and reused for the rest
of the process. Each group also gets one "sysid-test-state-<group>" string
stream.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)

STATE_STREAM_PREFIX = "sysid-test-state-"

# Unit labels, matching the names the analysis tooling expects
VOLTS = "Volt"
METERS = "Meter"
ROTATIONS = "Rotation"
METERS_PER_SECOND = "Meter per Second"
ROTATIONS_PER_SECOND = "Rotation per Second"
METERS_PER_SECOND_SQUARED = "Meter per Second per Second"
ROTATIONS_PER_SECOND_SQUARED = "Rotation per Second per Second"
AMPS = "Amp"


class SysIdState(str, Enum):
    """State of a system-identification test routine."""

    QUASISTATIC_FORWARD = "quasistatic-forward"
    QUASISTATIC_REVERSE = "quasistatic-reverse"
    DYNAMIC_FORWARD = "dynamic-forward"
    DYNAMIC_REVERSE = "dynamic-reverse"
    NONE = "none"

    def __str__(self) -> str:
        return self.value


class DoubleStream(Protocol):
    def append(self, value: float) -> None: ...


class StringStream(Protocol):
    def append(self, value: str) -> None: ...


class StreamSink(Protocol):
    """Opens named append-only output streams."""

    def open_double_stream(self, name: str, unit: str) -> DoubleStream: ...

    def open_string_stream(self, name: str) -> StringStream: ...


@dataclass
class MemoryStream:
    """In-memory append-only stream."""

    name: str
    unit: str = ""
    values: list = field(default_factory=list)

    def append(self, value: float | str) -> None:
        self.values.append(value)


class MemoryStreamSink:
    """StreamSink that keeps every stream in memory.

    ``open_count`` counts how many times each name was opened.
    """

    def __init__(self) -> None:
        self.streams: dict[str, MemoryStream] = {}
        self.open_count: dict[str, int] = {}

    def _open(self, name: str, unit: str) -> MemoryStream:
        self.open_count[name] = self.open_count.get(name, 0) + 1
        stream = MemoryStream(name=name, unit=unit)
        self.streams[name] = stream
        return stream

    def open_double_stream(self, name: str, unit: str) -> MemoryStream:
        return self._open(name, unit)

    def open_string_stream(self, name: str) -> MemoryStream:
        return self._open(name, "")


def stream_name(group: str, instance: str, field_name: str) -> str:
    return f"{field_name}-{instance}-{group}"


class InstrumentationLog:
    """Deduplicating registry of instrumentation streams.

    Streams are created lazily and cached for the lifetime of the log, so
    repeated writes to the same (group, instance, field) never reopen a
    stream. Lookup-or-create runs under a lock.
    """

    def __init__(self, sink: StreamSink) -> None:
        self._sink = sink
        self._streams: dict[tuple[str, str, str], DoubleStream] = {}
        self._state_streams: dict[str, StringStream] = {}
        self._lock = threading.Lock()

    def record(self, group: str, instance: str, field_name: str, value: float, unit: str) -> None:
        """Append value to the stream for (group, instance, field_name)."""
        key = (group, instance, field_name)
        with self._lock:
            stream = self._streams.get(key)
            if stream is None:
                name = stream_name(group, instance, field_name)
                stream = self._sink.open_double_stream(name, unit)
                self._streams[key] = stream
                logger.debug("Opened instrumentation stream %s [%s]", name, unit)
        stream.append(float(value))

    def record_state(self, group: str, state: SysIdState) -> None:
        """Append the test state to the group's state stream."""
        with self._lock:
            stream = self._state_streams.get(group)
            if stream is None:
                stream = self._sink.open_string_stream(STATE_STREAM_PREFIX + group)
                self._state_streams[group] = stream
        stream.append(str(state))

    @property
    def num_streams(self) -> int:
        return len(self._streams) + len(self._state_streams)


class MotorLog:
    """Chainable handle for logging one motor's data during a routine.

    Quantities are plain floats already expressed in the unit each method
    names.
    """

    def __init__(self, routine: SysIdRoutineLog, motor_name: str) -> None:
        self._routine = routine
        self._motor_name = motor_name

    def value(self, name: str, value: float, unit: str) -> MotorLog:
        """Log a generic data field."""
        self._routine.instrumentation.record(
            self._routine.log_name, self._motor_name, name, value, unit
        )
        return self

    def voltage(self, volts: float) -> MotorLog:
        return self.value("voltage", volts, VOLTS)

    def linear_position(self, meters: float) -> MotorLog:
        return self.value("position", meters, METERS)

    def angular_position(self, rotations: float) -> MotorLog:
        return self.value("position", rotations, ROTATIONS)

    def linear_velocity(self, meters_per_second: float) -> MotorLog:
        return self.value("velocity", meters_per_second, METERS_PER_SECOND)

    def angular_velocity(self, rotations_per_second: float) -> MotorLog:
        return self.value("velocity", rotations_per_second, ROTATIONS_PER_SECOND)

    def linear_acceleration(self, meters_per_second_squared: float) -> MotorLog:
        return self.value("acceleration", meters_per_second_squared, METERS_PER_SECOND_SQUARED)

    def angular_acceleration(self, rotations_per_second_squared: float) -> MotorLog:
        return self.value(
            "acceleration", rotations_per_second_squared, ROTATIONS_PER_SECOND_SQUARED
        )

    def current(self, amps: float) -> MotorLog:
        return self.value("current", amps, AMPS)


class SysIdRoutineLog:
    """Logging for one complete test routine (all four test kinds).

    Args:
        log_name: Unique name of the routine in the log.
        instrumentation: Shared instrumentation log the streams go through.
    """

    def __init__(self, log_name: str, instrumentation: InstrumentationLog) -> None:
        self.log_name = log_name
        self.instrumentation = instrumentation

    def motor(self, motor_name: str) -> MotorLog:
        return MotorLog(self, motor_name)

    def record_state(self, state: SysIdState) -> None:
        """Call once per cycle during a test, and once with NONE when it ends."""
        self.instrumentation.record_state(self.log_name, state)
