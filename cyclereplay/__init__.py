"""cyclereplay — record robot inputs every control cycle, replay them exactly.

Each subsystem keeps its externally observed inputs in a bundle that can
serialize itself into a LogTable and restore itself from one. A single
Dispatcher, passed to every subsystem, either reads hardware and records
the bundle, or restores the bundle from a previously recorded log, so the
rest of the control program sees the same inputs as the original run.

Quick start:
    from cyclereplay import Dispatcher, LogReader, LogWriter, LoggedDriverStation

    # Record
    with Dispatcher(sink=LogWriter("match_12.cylog")) as dispatcher:
        ds = LoggedDriverStation(dispatcher, hardware)
        for _ in range(cycles):
            ds.periodic()
            dispatcher.end_cycle()

    # Replay
    with Dispatcher(replay_source=LogReader("match_12.cylog")) as dispatcher:
        ds = LoggedDriverStation(dispatcher)
        while dispatcher.has_next_cycle():
            ds.periodic()
            dispatcher.end_cycle()

    # Instrumentation streams
    from cyclereplay.sysid import InstrumentationLog, SysIdRoutineLog
"""

__version__ = "0.1.0"

from cyclereplay.dispatcher import Dispatcher, LogSink, ReplaySource
from cyclereplay.driver_station import DriverStationInputs, JoystickInputs, LoggedDriverStation
from cyclereplay.inputs import AutoLoggedInputs, LoggableInputs
from cyclereplay.storage import LogReader, LogWriter, MemoryLog
from cyclereplay.table import LogTable, LogTableTypeError, LogType, LogValue

__all__ = [
    "AutoLoggedInputs",
    "Dispatcher",
    "DriverStationInputs",
    "JoystickInputs",
    "LogReader",
    "LogSink",
    "LogTable",
    "LogTableTypeError",
    "LogType",
    "LogValue",
    "LogWriter",
    "LoggableInputs",
    "LoggedDriverStation",
    "MemoryLog",
    "ReplaySource",
    "__version__",
]
