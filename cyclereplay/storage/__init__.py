"""Durable log storage: HDF5 writer/reader and an in-memory log."""

from cyclereplay.storage.memory import MemoryLog
from cyclereplay.storage.reader import LogReader
from cyclereplay.storage.writer import LogWriter

__all__ = ["LogReader", "LogWriter", "MemoryLog"]
