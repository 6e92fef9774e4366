"""cyclereplay Example: Record and Replay a Simulated Match

Simulates 150 control cycles of a match with one Xbox controller, records
the driver station inputs to a log, then replays the log and checks that
the control code sees exactly the same inputs. A short shooter
characterization routine is logged alongside.

Run:
    python examples/simulated_match.py

Output:
    - Creates simulated_match.cylog
    - Prints how many cycles replayed identically
"""

import numpy as np

from cyclereplay import Dispatcher, LoggedDriverStation, LogReader, LogWriter
from cyclereplay.hardware import (
    ControlWord,
    DriverStationSnapshot,
    JoystickSnapshot,
    SnapshotHardwareSource,
)
from cyclereplay.sysid import InstrumentationLog, SysIdRoutineLog, SysIdState
from cyclereplay.utils.schema import LogMetadata

CYCLES = 150
DT = 0.02


def hardware_at(cycle: int, rng: np.random.Generator) -> DriverStationSnapshot:
    auto = cycle < 50
    flags = ControlWord(enabled=True, autonomous=auto, fms_attached=True, ds_attached=True)
    stick = rng.normal(0, 0.3, 6).clip(-1.0, 1.0)
    return DriverStationSnapshot(
        alliance_station=1,
        event_name="SIM",
        match_number=7,
        match_type=2,
        match_time=max(0.0, 150.0 - cycle * DT),
        control_word=flags.encode(),
        joysticks={
            0: JoystickSnapshot(
                name="Xbox Controller",
                type=1,
                xbox=True,
                axis_types=[0, 1, 2, 3, 4, 5],
                axis_values=stick.tolist(),
                povs=[-1],
                button_word=int(rng.integers(0, 1 << 10)),
                button_count=10,
            )
        },
    )


def drive_command(ds: LoggedDriverStation) -> float:
    """Stand-in for robot code that consumes the logged inputs."""
    axes = ds.joysticks[0].axis_values
    if not ds.inputs.enabled or len(axes) < 2:
        return 0.0
    return float(-axes[1] * 12.0)


def record(path: str) -> list[float]:
    rng = np.random.default_rng(6328)
    hardware = SnapshotHardwareSource()
    writer = LogWriter(path, LogMetadata(name="simulated_match", robot="sim"))
    commands = []

    with Dispatcher(sink=writer) as dispatcher:
        ds = LoggedDriverStation(dispatcher, hardware)
        shooter = SysIdRoutineLog("shooter", InstrumentationLog(writer))

        for cycle in range(CYCLES):
            hardware.snapshot = hardware_at(cycle, rng)
            ds.periodic()
            volts = drive_command(ds)
            commands.append(volts)

            if ds.inputs.autonomous:
                shooter.record_state(SysIdState.QUASISTATIC_FORWARD)
                shooter.motor("shooter-left").voltage(cycle * 0.05).angular_velocity(cycle * 0.4)
            elif cycle == 50:
                shooter.record_state(SysIdState.NONE)

            dispatcher.end_cycle()

    return commands


def replay(path: str) -> list[float]:
    commands = []
    with Dispatcher(replay_source=LogReader(path)) as dispatcher:
        ds = LoggedDriverStation(dispatcher)
        while dispatcher.has_next_cycle():
            ds.periodic()
            commands.append(drive_command(ds))
            dispatcher.end_cycle()
    return commands


if __name__ == "__main__":
    path = "simulated_match.cylog"
    recorded = record(path)
    replayed = replay(path)

    identical = sum(a == b for a, b in zip(recorded, replayed))
    print(f"Recorded {len(recorded)} cycles, replayed {len(replayed)}")
    print(f"Identical drive commands: {identical}/{len(recorded)}")
    print(f"Inspect with: cyclereplay info {path}")
