"""cyclereplay .cylog file format constants and helpers.

The .cylog format is HDF5 with a specific structure:

    /                  — attrs: format_version, metadata, schema, streams, num_cycles
    /entries/
        /e<N>/cycles   — int64 dataset, cycle indices at which the key was recorded
        /e<N>/values   — dataset of the key's type, one row per recorded cycle
    /streams/
        /s<N>          — append-only instrumentation stream (float64 or string)

The schema attr maps every full key ("<prefix>/<key>") to its entry group
and value type. Array values are stored as variable-length rows; string
arrays are stored as JSON-encoded strings.
"""

import json

import h5py
import numpy as np

from cyclereplay.table import LogType

# Root attributes
FORMAT_VERSION_ATTR = "format_version"
METADATA_ATTR = "metadata"
SCHEMA_ATTR = "schema"
STREAMS_ATTR = "streams"
NUM_CYCLES_ATTR = "num_cycles"

# HDF5 groups and datasets
ENTRIES_GROUP = "entries"
STREAMS_GROUP = "streams"
CYCLES_DATASET = "cycles"
VALUES_DATASET = "values"
UNIT_ATTR = "unit"

# File extension
FILE_EXTENSION = ".cylog"

# Compression settings
COMPRESSION = "gzip"
COMPRESSION_OPTS = 4  # compression level 1-9, 4 is good speed/ratio balance

# Flush to disk every this many cycles
CHUNK_CYCLES = 50

# Initial dataset allocation (grows dynamically)
INITIAL_ROWS = 256

# Version of the format
FORMAT_VERSION = "1.0.0"


def value_dtype(log_type: LogType) -> np.dtype:
    """HDF5 storage dtype for values of a LogType."""
    if log_type is LogType.BOOLEAN:
        return np.dtype(np.uint8)
    if log_type is LogType.INTEGER:
        return np.dtype(np.int64)
    if log_type is LogType.DOUBLE:
        return np.dtype(np.float64)
    if log_type in (LogType.STRING, LogType.STRING_ARRAY):
        return h5py.string_dtype()
    if log_type is LogType.BOOLEAN_ARRAY:
        return h5py.vlen_dtype(np.uint8)
    if log_type is LogType.INTEGER_ARRAY:
        return h5py.vlen_dtype(np.int64)
    return h5py.vlen_dtype(np.float64)


def encode_value(log_type: LogType, value):
    """Convert a table value to what gets written into its dataset row."""
    if log_type is LogType.BOOLEAN:
        return np.uint8(value)
    if log_type is LogType.INTEGER:
        return np.int64(value)
    if log_type is LogType.STRING_ARRAY:
        return json.dumps(list(value))
    if log_type is LogType.BOOLEAN_ARRAY:
        return np.asarray(value, dtype=np.uint8)
    return value


def decode_value(log_type: LogType, raw):
    """Convert a dataset row back into a table value."""
    if log_type is LogType.BOOLEAN:
        return bool(raw)
    if log_type is LogType.INTEGER:
        return int(raw)
    if log_type is LogType.DOUBLE:
        return float(raw)
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    if log_type is LogType.STRING:
        return raw
    if log_type is LogType.STRING_ARRAY:
        return tuple(json.loads(raw))
    return raw
