"""Logged driver station — robot state and joystick inputs.

The key names written here are part of the log format and must never
change, or older logs stop replaying.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from cyclereplay.dispatcher import Dispatcher
from cyclereplay.hardware import NUM_JOYSTICKS, ControlWord, HardwareSource, decode_buttons
from cyclereplay.table import LogTable

logger = logging.getLogger(__name__)

DRIVER_STATION_PREFIX = "DriverStation"


def _empty(dtype: type) -> np.ndarray:
    return np.zeros(0, dtype=dtype)


@dataclass
class DriverStationInputs:
    """General driver station data that changes throughout a match."""

    alliance_station: int = 0
    event_name: str = ""
    game_specific_message: str = ""
    match_number: int = 0
    replay_number: int = 0
    match_type: int = 0
    match_time: float = 0.0

    enabled: bool = False
    autonomous: bool = False
    test: bool = False
    emergency_stop: bool = False
    fms_attached: bool = False
    ds_attached: bool = False

    def serialize(self, table: LogTable) -> None:
        table.put_integer("AllianceStation", self.alliance_station)
        table.put_string("EventName", self.event_name)
        table.put_string("GameSpecificMessage", self.game_specific_message)
        table.put_integer("MatchNumber", self.match_number)
        table.put_integer("ReplayNumber", self.replay_number)
        table.put_integer("MatchType", self.match_type)
        table.put_double("MatchTime", self.match_time)

        table.put_boolean("Enabled", self.enabled)
        table.put_boolean("Autonomous", self.autonomous)
        table.put_boolean("Test", self.test)
        table.put_boolean("EmergencyStop", self.emergency_stop)
        table.put_boolean("FMSAttached", self.fms_attached)
        table.put_boolean("DSAttached", self.ds_attached)

    def restore(self, table: LogTable) -> None:
        self.alliance_station = table.get_integer("AllianceStation", self.alliance_station)
        self.event_name = table.get_string("EventName", self.event_name)
        self.game_specific_message = table.get_string(
            "GameSpecificMessage", self.game_specific_message
        )
        self.match_number = table.get_integer("MatchNumber", self.match_number)
        self.replay_number = table.get_integer("ReplayNumber", self.replay_number)
        self.match_type = table.get_integer("MatchType", self.match_type)
        self.match_time = table.get_double("MatchTime", self.match_time)

        self.enabled = table.get_boolean("Enabled", self.enabled)
        self.autonomous = table.get_boolean("Autonomous", self.autonomous)
        self.test = table.get_boolean("Test", self.test)
        self.emergency_stop = table.get_boolean("EmergencyStop", self.emergency_stop)
        self.fms_attached = table.get_boolean("FMSAttached", self.fms_attached)
        self.ds_attached = table.get_boolean("DSAttached", self.ds_attached)

    def apply_control_word(self, word: int) -> None:
        flags = ControlWord.decode(word)
        self.enabled = flags.enabled
        self.autonomous = flags.autonomous
        self.test = flags.test
        self.emergency_stop = flags.emergency_stop
        self.fms_attached = flags.fms_attached
        self.ds_attached = flags.ds_attached


@dataclass
class JoystickInputs:
    """All recorded inputs of a single joystick."""

    name: str = ""
    type: int = 0
    xbox: bool = False
    buttons: np.ndarray = field(default_factory=lambda: _empty(np.bool_))
    axis_values: np.ndarray = field(default_factory=lambda: _empty(np.float64))
    axis_types: np.ndarray = field(default_factory=lambda: _empty(np.int64))
    povs: np.ndarray = field(default_factory=lambda: _empty(np.int64))

    def serialize(self, table: LogTable) -> None:
        table.put_string("Name", self.name)
        table.put_integer("Type", self.type)
        table.put_boolean("Xbox", self.xbox)
        table.put_boolean_array("Buttons", self.buttons)
        table.put_double_array("AxisValues", self.axis_values)
        table.put_integer_array("AxisTypes", self.axis_types)
        table.put_integer_array("POVs", self.povs)

    def restore(self, table: LogTable) -> None:
        # Array lengths may differ from the previous cycle (controller swapped)
        self.name = table.get_string("Name", self.name)
        self.type = table.get_integer("Type", self.type)
        self.xbox = table.get_boolean("Xbox", self.xbox)
        self.buttons = table.get_boolean_array("Buttons", self.buttons)
        self.axis_values = table.get_double_array("AxisValues", self.axis_values)
        self.axis_types = table.get_integer_array("AxisTypes", self.axis_types)
        self.povs = table.get_integer_array("POVs", self.povs)

    def clear(self) -> None:
        """Reset to the disconnected state."""
        self.name = ""
        self.type = 0
        self.xbox = False
        self.buttons = _empty(np.bool_)
        self.axis_values = _empty(np.float64)
        self.axis_types = _empty(np.int64)
        self.povs = _empty(np.int64)


class LoggedDriverStation:
    """Records driver station and joystick inputs each cycle, or replays them.

    Args:
        dispatcher: The run's dispatcher.
        hardware: Live driver-station values. Not consulted in replay mode.
        num_joysticks: Number of joystick slots to log.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        hardware: HardwareSource | None = None,
        num_joysticks: int = NUM_JOYSTICKS,
    ) -> None:
        if hardware is None and not dispatcher.replay_active:
            raise ValueError("A hardware source is required in record mode.")
        self._dispatcher = dispatcher
        self._hardware = hardware
        self.inputs = DriverStationInputs()
        self.joysticks = [JoystickInputs() for _ in range(num_joysticks)]

    def periodic(self) -> None:
        """Update all driver station inputs for the current cycle."""
        self._dispatcher.process(DRIVER_STATION_PREFIX, self.inputs, self._read_driver_station)
        for joystick_id, joystick in enumerate(self.joysticks):
            self._dispatcher.process(
                f"{DRIVER_STATION_PREFIX}/Joystick{joystick_id}",
                joystick,
                lambda jid=joystick_id: self._read_joystick(jid),
            )

    def _read_driver_station(self) -> None:
        hw = self._hardware
        assert hw is not None
        # Read everything first so a failure never leaves a half-updated bundle
        fresh = DriverStationInputs()
        try:
            fresh.alliance_station = int(hw.get_alliance_station())
            fresh.event_name = str(hw.get_event_name())
            fresh.game_specific_message = str(hw.get_game_specific_message())
            fresh.match_number = int(hw.get_match_number())
            fresh.replay_number = int(hw.get_replay_number())
            fresh.match_type = int(hw.get_match_type())
            fresh.match_time = float(hw.get_match_time())
            fresh.apply_control_word(int(hw.get_control_word()))
        except Exception:
            logger.warning("Driver station read failed; logging defaults", exc_info=True)
            fresh = DriverStationInputs()
        vars(self.inputs).update(vars(fresh))

    def _read_joystick(self, joystick_id: int) -> None:
        hw = self._hardware
        assert hw is not None
        joystick = self.joysticks[joystick_id]
        try:
            name = str(hw.get_joystick_name(joystick_id))
            joystick_type = int(hw.get_joystick_type(joystick_id))
            xbox = bool(hw.is_xbox(joystick_id))
            axis_types = np.asarray(hw.get_axis_types(joystick_id), dtype=np.int64)
            povs = np.asarray(hw.get_pov_values(joystick_id), dtype=np.int64)
            axis_values = np.asarray(hw.get_axis_values(joystick_id), dtype=np.float64)
            buttons = decode_buttons(
                int(hw.get_button_values(joystick_id)),
                int(hw.get_button_count(joystick_id)),
            )
        except Exception:
            logger.warning("Joystick %d read failed; logging as disconnected", joystick_id,
                           exc_info=True)
            joystick.clear()
            return

        joystick.name = name
        joystick.type = joystick_type
        joystick.xbox = xbox
        joystick.axis_types = axis_types
        joystick.povs = povs
        joystick.axis_values = axis_values
        joystick.buttons = buttons
