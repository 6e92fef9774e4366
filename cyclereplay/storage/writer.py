"""Streaming HDF5 writer for .cylog files.

Writes each recorded key incrementally into chunked, resizable HDF5
datasets. Flushes periodically so a crash loses at most a few cycles.
Also serves as the stream sink for instrumentation streams.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

import h5py
import numpy as np

from cyclereplay.storage.format import (
    CHUNK_CYCLES,
    COMPRESSION,
    COMPRESSION_OPTS,
    CYCLES_DATASET,
    ENTRIES_GROUP,
    FILE_EXTENSION,
    FORMAT_VERSION,
    FORMAT_VERSION_ATTR,
    INITIAL_ROWS,
    METADATA_ATTR,
    NUM_CYCLES_ATTR,
    SCHEMA_ATTR,
    STREAMS_ATTR,
    STREAMS_GROUP,
    UNIT_ATTR,
    VALUES_DATASET,
    encode_value,
    value_dtype,
)
from cyclereplay.table import LogTable, LogTableTypeError, LogType
from cyclereplay.utils.schema import EntrySchema, LogMetadata, LogSchema, StreamIndex

logger = logging.getLogger(__name__)


def _create_growable(group: h5py.Group, name: str, dtype: Any) -> h5py.Dataset:
    return group.create_dataset(
        name,
        shape=(INITIAL_ROWS,),
        maxshape=(None,),
        dtype=dtype,
        chunks=(CHUNK_CYCLES,),
        compression=COMPRESSION,
        compression_opts=COMPRESSION_OPTS,
    )


def _ensure_capacity(ds: h5py.Dataset, row: int) -> None:
    if row >= ds.shape[0]:
        ds.resize(max(ds.shape[0] * 2, row + CHUNK_CYCLES), axis=0)


class _Entry:
    """Open datasets for one recorded key."""

    def __init__(self, schema: EntrySchema, cycles: h5py.Dataset, values: h5py.Dataset) -> None:
        self.schema = schema
        self.cycles = cycles
        self.values = values
        self.count = 0

    def append(self, cycle: int, encoded: Any) -> None:
        _ensure_capacity(self.cycles, self.count)
        _ensure_capacity(self.values, self.count)
        self.cycles[self.count] = cycle
        self.values[self.count] = encoded
        self.count += 1


class StreamWriter:
    """Append-only instrumentation stream inside a .cylog file."""

    def __init__(self, writer: LogWriter, name: str, dataset: h5py.Dataset) -> None:
        self._writer = writer
        self.name = name
        self._dataset = dataset
        self.count = 0

    def append(self, value: float | str) -> None:
        with self._writer._lock:
            _ensure_capacity(self._dataset, self.count)
            self._dataset[self.count] = value
            self.count += 1


class LogWriter:
    """Writes recorded tables incrementally to an HDF5 log file.

    Thread-safe. Each key written under a prefix gets its own pair of
    growable datasets, created on first write.

    Args:
        path: Output path. ".cylog" is appended if it has no suffix.
        metadata: Log metadata. Defaults to metadata named after the file.
    """

    def __init__(self, path: str | Path, metadata: LogMetadata | None = None) -> None:
        self.path = Path(path)
        if not self.path.suffix:
            self.path = self.path.with_suffix(FILE_EXTENSION)
        self.metadata = metadata or LogMetadata(name=self.path.stem)
        self.schema = LogSchema()
        self.stream_index = StreamIndex()

        self._file: h5py.File | None = None
        self._entries: dict[str, _Entry] = {}
        self._streams: dict[str, StreamWriter] = {}
        self._last_cycles: dict[str, int] = {}
        self._lock = threading.RLock()
        self._num_cycles = 0
        self._last_flushed_cycle = 0

    def open(self) -> None:
        """Open the HDF5 file for writing."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = h5py.File(str(self.path), "w")
        self._file.attrs[FORMAT_VERSION_ATTR] = FORMAT_VERSION
        self._file.create_group(ENTRIES_GROUP)
        self._file.create_group(STREAMS_GROUP)
        logger.debug("Opened log %s for writing", self.path)

    def _require_open(self) -> h5py.File:
        if self._file is None:
            raise RuntimeError("Writer not opened. Call .open() first.")
        return self._file

    def _init_entry(self, prefix: str, name: str, log_type: LogType) -> _Entry:
        """Create the datasets for a new key on first write."""
        file = self._require_open()
        schema = self.schema.add_entry(prefix, name, log_type)
        group = file[ENTRIES_GROUP].create_group(schema.group)
        entry = _Entry(
            schema,
            _create_growable(group, CYCLES_DATASET, np.int64),
            _create_growable(group, VALUES_DATASET, value_dtype(log_type)),
        )
        self._entries[schema.key] = entry
        return entry

    def write(self, cycle: int, prefix: str, table: LogTable) -> None:
        """Write every value of one table, recorded under prefix at cycle.

        Each prefix is written at most once per cycle, in increasing cycle
        order. The table is validated and encoded in full before any row is
        appended, so a rejected table leaves no partial cycle.
        """
        with self._lock:
            self._require_open()

            last = self._last_cycles.get(prefix, -1)
            if cycle <= last:
                raise ValueError(
                    f"'{prefix}' already recorded at cycle {last}, cannot write cycle {cycle}"
                )

            rows = []
            for key, value in table.items():
                entry = self._entries.get(f"{prefix}/{key}")
                if entry is not None and entry.schema.type is not value.type:
                    raise LogTableTypeError(
                        f"'{entry.schema.key}' is logged as {entry.schema.type.value}, "
                        f"cannot write {value.type.value}"
                    )
                rows.append((key, value.type, entry, encode_value(value.type, value.value)))

            for key, log_type, entry, encoded in rows:
                if entry is None:
                    entry = self._init_entry(prefix, key, log_type)
                entry.append(cycle, encoded)

            self._last_cycles[prefix] = cycle
            self._num_cycles = max(self._num_cycles, cycle + 1)

            # Periodic flush
            if cycle - self._last_flushed_cycle >= CHUNK_CYCLES:
                self._flush()
                self._last_flushed_cycle = cycle

    # --- Instrumentation streams ---

    def _open_stream(self, name: str, kind: str, unit: str) -> StreamWriter:
        with self._lock:
            file = self._require_open()
            schema = self.stream_index.add_stream(name, kind, unit)
            dtype = np.float64 if kind == "double" else h5py.string_dtype()
            ds = _create_growable(file[STREAMS_GROUP], schema.dataset, dtype)
            ds.attrs[UNIT_ATTR] = unit
            stream = StreamWriter(self, name, ds)
            self._streams[name] = stream
            return stream

    def open_double_stream(self, name: str, unit: str) -> StreamWriter:
        return self._open_stream(name, "double", unit)

    def open_string_stream(self, name: str) -> StreamWriter:
        return self._open_stream(name, "string", "")

    def _flush(self) -> None:
        """Flush data to disk."""
        if self._file is not None:
            self._file.flush()

    def close(self) -> None:
        """Finalize and close the file.

        Truncates datasets to their actual size and writes metadata and
        schemas.
        """
        if self._file is None:
            return

        with self._lock:
            for entry in self._entries.values():
                entry.cycles.resize(entry.count, axis=0)
                entry.values.resize(entry.count, axis=0)
            for stream in self._streams.values():
                stream._dataset.resize(stream.count, axis=0)

            self._file.attrs[METADATA_ATTR] = self.metadata.to_json()
            self._file.attrs[SCHEMA_ATTR] = self.schema.to_json()
            self._file.attrs[STREAMS_ATTR] = self.stream_index.to_json()
            self._file.attrs[NUM_CYCLES_ATTR] = self._num_cycles

            self._file.close()
            self._file = None
        logger.debug("Closed log %s (%d cycles, %d keys)", self.path, self._num_cycles,
                     len(self._entries))

    @property
    def num_cycles(self) -> int:
        return self._num_cycles

    def __enter__(self) -> LogWriter:
        self.open()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
