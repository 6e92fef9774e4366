"""Hardware source interface for live driver-station and joystick values.

The hardware source is read-only from the logging side: each cycle the
driver-station subsystem pulls a snapshot of every field it records.
SnapshotHardwareSource serves those values from pydantic models, for
simulation and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import numpy as np
from pydantic import BaseModel, Field

# Bit positions inside the driver-station control word
ENABLED_BIT = 0
AUTONOMOUS_BIT = 1
TEST_BIT = 2
EMERGENCY_STOP_BIT = 3
FMS_ATTACHED_BIT = 4
DS_ATTACHED_BIT = 5

NUM_JOYSTICKS = 6


@dataclass(frozen=True)
class ControlWord:
    """Robot state flags packed into the driver-station control word."""

    enabled: bool = False
    autonomous: bool = False
    test: bool = False
    emergency_stop: bool = False
    fms_attached: bool = False
    ds_attached: bool = False

    @classmethod
    def decode(cls, word: int) -> ControlWord:
        return cls(
            enabled=bool(word >> ENABLED_BIT & 1),
            autonomous=bool(word >> AUTONOMOUS_BIT & 1),
            test=bool(word >> TEST_BIT & 1),
            emergency_stop=bool(word >> EMERGENCY_STOP_BIT & 1),
            fms_attached=bool(word >> FMS_ATTACHED_BIT & 1),
            ds_attached=bool(word >> DS_ATTACHED_BIT & 1),
        )

    def encode(self) -> int:
        return (
            self.enabled << ENABLED_BIT
            | self.autonomous << AUTONOMOUS_BIT
            | self.test << TEST_BIT
            | self.emergency_stop << EMERGENCY_STOP_BIT
            | self.fms_attached << FMS_ATTACHED_BIT
            | self.ds_attached << DS_ATTACHED_BIT
        )


def decode_buttons(word: int, count: int) -> np.ndarray:
    """Unpack a button bit field into a bool array of length count."""
    return np.array([(word >> i) & 1 == 1 for i in range(count)], dtype=bool)


class HardwareSource(Protocol):
    """Read-only accessors for live driver-station state."""

    def get_alliance_station(self) -> int: ...
    def get_event_name(self) -> str: ...
    def get_game_specific_message(self) -> str: ...
    def get_match_number(self) -> int: ...
    def get_replay_number(self) -> int: ...
    def get_match_type(self) -> int: ...
    def get_match_time(self) -> float: ...
    def get_control_word(self) -> int: ...

    def get_joystick_name(self, joystick: int) -> str: ...
    def get_joystick_type(self, joystick: int) -> int: ...
    def is_xbox(self, joystick: int) -> bool: ...
    def get_axis_types(self, joystick: int) -> list[int]: ...
    def get_pov_values(self, joystick: int) -> list[int]: ...
    def get_axis_values(self, joystick: int) -> list[float]: ...
    def get_button_values(self, joystick: int) -> int: ...
    def get_button_count(self, joystick: int) -> int: ...


class JoystickSnapshot(BaseModel):
    """Raw state of one joystick as reported by the driver station."""

    name: str = ""
    type: int = 0
    xbox: bool = False
    axis_types: list[int] = Field(default_factory=list)
    axis_values: list[float] = Field(default_factory=list)
    povs: list[int] = Field(default_factory=list)
    button_word: int = 0
    button_count: int = 0


class DriverStationSnapshot(BaseModel):
    """Raw driver-station state for one cycle."""

    alliance_station: int = 0
    event_name: str = ""
    game_specific_message: str = ""
    match_number: int = 0
    replay_number: int = 0
    match_type: int = 0
    match_time: float = 0.0
    control_word: int = 0
    joysticks: dict[int, JoystickSnapshot] = Field(default_factory=dict)


class SnapshotHardwareSource:
    """HardwareSource that serves values from a DriverStationSnapshot.

    Assign a new snapshot each cycle to simulate changing hardware. A
    joystick id missing from the snapshot reads as disconnected.
    """

    def __init__(self, snapshot: DriverStationSnapshot | None = None) -> None:
        self.snapshot = snapshot or DriverStationSnapshot()

    def _joystick(self, joystick: int) -> JoystickSnapshot:
        return self.snapshot.joysticks.get(joystick) or JoystickSnapshot()

    def get_alliance_station(self) -> int:
        return self.snapshot.alliance_station

    def get_event_name(self) -> str:
        return self.snapshot.event_name

    def get_game_specific_message(self) -> str:
        return self.snapshot.game_specific_message

    def get_match_number(self) -> int:
        return self.snapshot.match_number

    def get_replay_number(self) -> int:
        return self.snapshot.replay_number

    def get_match_type(self) -> int:
        return self.snapshot.match_type

    def get_match_time(self) -> float:
        return self.snapshot.match_time

    def get_control_word(self) -> int:
        return self.snapshot.control_word

    def get_joystick_name(self, joystick: int) -> str:
        return self._joystick(joystick).name

    def get_joystick_type(self, joystick: int) -> int:
        return self._joystick(joystick).type

    def is_xbox(self, joystick: int) -> bool:
        return self._joystick(joystick).xbox

    def get_axis_types(self, joystick: int) -> list[int]:
        return list(self._joystick(joystick).axis_types)

    def get_pov_values(self, joystick: int) -> list[int]:
        return list(self._joystick(joystick).povs)

    def get_axis_values(self, joystick: int) -> list[float]:
        return list(self._joystick(joystick).axis_values)

    def get_button_values(self, joystick: int) -> int:
        return self._joystick(joystick).button_word

    def get_button_count(self, joystick: int) -> int:
        return self._joystick(joystick).button_count
