"""In-memory log, usable both as a sink and as a replay source."""

from __future__ import annotations

from cyclereplay.table import LogTable


class MemoryLog:
    """Keeps recorded tables in memory, addressed by (cycle, prefix).

    Record into it with a recording dispatcher, then hand the same object
    to a replaying dispatcher. Like LogWriter, it takes each prefix at most
    once per cycle, in increasing cycle order.
    """

    def __init__(self) -> None:
        self._tables: dict[tuple[int, str], LogTable] = {}
        self._last_cycles: dict[str, int] = {}
        self._num_cycles = 0

    def open(self) -> None:
        pass

    def close(self) -> None:
        pass

    def write(self, cycle: int, prefix: str, table: LogTable) -> None:
        last = self._last_cycles.get(prefix, -1)
        if cycle <= last:
            raise ValueError(
                f"'{prefix}' already recorded at cycle {last}, cannot write cycle {cycle}"
            )
        self._tables[(cycle, prefix)] = table.copy()
        self._last_cycles[prefix] = cycle
        self._num_cycles = max(self._num_cycles, cycle + 1)

    def read(self, cycle: int, prefix: str) -> LogTable:
        """Copy of the table recorded at (cycle, prefix), or an empty table."""
        table = self._tables.get((cycle, prefix))
        return table.copy() if table is not None else LogTable()

    @property
    def num_cycles(self) -> int:
        return self._num_cycles

    @property
    def prefixes(self) -> list[str]:
        return list(dict.fromkeys(prefix for _, prefix in self._tables))

    def __len__(self) -> int:
        return len(self._tables)
