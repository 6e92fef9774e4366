"""Random-access HDF5 reader for .cylog files.

Serves as the replay source: read(cycle, prefix) rebuilds the table that
was recorded for that prefix at that cycle.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import h5py
import numpy as np

from cyclereplay.storage.format import (
    CYCLES_DATASET,
    ENTRIES_GROUP,
    METADATA_ATTR,
    NUM_CYCLES_ATTR,
    SCHEMA_ATTR,
    STREAMS_ATTR,
    STREAMS_GROUP,
    VALUES_DATASET,
    decode_value,
)
from cyclereplay.table import LogTable, make_value
from cyclereplay.utils.schema import EntrySchema, LogMetadata, LogSchema, StreamIndex


class LogReader:
    """Random-access reader for .cylog log files.

    Caches metadata, schema and every key's cycle index on open; values
    are read from disk on demand.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"Log not found: {self.path}")

        self._file: h5py.File | None = None
        self._metadata: LogMetadata | None = None
        self._schema: LogSchema | None = None
        self._stream_index: StreamIndex | None = None
        self._num_cycles = 0
        self._cycles: dict[str, np.ndarray] = {}
        self._by_prefix: dict[str, list[EntrySchema]] = {}

    def open(self) -> None:
        """Open the file for reading."""
        self._file = h5py.File(str(self.path), "r")

        self._metadata = LogMetadata.from_json(self._file.attrs[METADATA_ATTR])
        self._schema = LogSchema.from_json(self._file.attrs[SCHEMA_ATTR])
        self._stream_index = StreamIndex.from_json(self._file.attrs[STREAMS_ATTR])
        self._num_cycles = int(self._file.attrs[NUM_CYCLES_ATTR])

        entries_group = self._file[ENTRIES_GROUP]
        self._cycles = {}
        self._by_prefix = {}
        for key, entry in self._schema.entries.items():
            self._cycles[key] = entries_group[entry.group][CYCLES_DATASET][:]
            self._by_prefix.setdefault(entry.prefix, []).append(entry)

    def close(self) -> None:
        """Close the file."""
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> LogReader:
        self.open()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _require_open(self) -> h5py.File:
        if self._file is None:
            raise RuntimeError("Reader not opened. Call .open() first.")
        return self._file

    @property
    def metadata(self) -> LogMetadata:
        if self._metadata is None:
            raise RuntimeError("Reader not opened. Call .open() first.")
        return self._metadata

    @property
    def schema(self) -> LogSchema:
        if self._schema is None:
            raise RuntimeError("Reader not opened. Call .open() first.")
        return self._schema

    @property
    def stream_index(self) -> StreamIndex:
        if self._stream_index is None:
            raise RuntimeError("Reader not opened. Call .open() first.")
        return self._stream_index

    @property
    def num_cycles(self) -> int:
        """Number of cycles spanned by the log."""
        self._require_open()
        return self._num_cycles

    @property
    def prefixes(self) -> list[str]:
        """All prefixes recorded in the log."""
        return self.schema.prefixes()

    def read(self, cycle: int, prefix: str) -> LogTable:
        """Table recorded under prefix at cycle.

        Returns an empty table if nothing was recorded at that address.
        """
        file = self._require_open()
        table = LogTable()
        entries_group = file[ENTRIES_GROUP]
        for entry in self._by_prefix.get(prefix, []):
            cycles = self._cycles[entry.key]
            row = int(np.searchsorted(cycles, cycle))
            if row >= len(cycles) or cycles[row] != cycle:
                continue
            raw = entries_group[entry.group][VALUES_DATASET][row]
            table.put_value(entry.name, make_value(entry.type, decode_value(entry.type, raw)))
        return table

    def key_cycles(self, key: str) -> np.ndarray:
        """Cycle indices at which a full key was recorded."""
        self._require_open()
        if key not in self._cycles:
            raise KeyError(f"Key '{key}' not found. Available: {list(self._cycles)}")
        return self._cycles[key]

    def stream(self, name: str) -> list:
        """All values appended to an instrumentation stream, in order."""
        file = self._require_open()
        if name not in self.stream_index.streams:
            raise KeyError(
                f"Stream '{name}' not found. Available: {list(self.stream_index.streams)}"
            )
        schema = self.stream_index.streams[name]
        ds = file[STREAMS_GROUP][schema.dataset]
        if schema.kind == "string":
            return list(ds.asstr()[:])
        return [float(v) for v in ds[:]]
