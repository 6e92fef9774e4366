"""Pydantic models for cyclereplay log files."""

from __future__ import annotations

import platform
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from cyclereplay.table import LogType


class SystemInfo(BaseModel):
    """Captured system information at recording time."""

    python_version: str = Field(default_factory=lambda: platform.python_version())
    platform: str = Field(default_factory=lambda: platform.platform())
    hostname: str = Field(default_factory=lambda: platform.node())


class LogMetadata(BaseModel):
    """Metadata for a recorded run."""

    name: str
    robot: str = ""
    user_metadata: dict[str, Any] = Field(default_factory=dict)
    system_info: SystemInfo = Field(default_factory=SystemInfo)
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    cyclereplay_version: str = "0.1.0"

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> LogMetadata:
        return cls.model_validate_json(data)


class EntrySchema(BaseModel):
    """Schema for one recorded key."""

    prefix: str
    name: str  # key inside the prefix's table
    type: LogType
    group: str  # HDF5 group name under /entries

    @property
    def key(self) -> str:
        return f"{self.prefix}/{self.name}"


class LogSchema(BaseModel):
    """Schema describing every key in a log."""

    entries: dict[str, EntrySchema] = Field(default_factory=dict)

    def add_entry(self, prefix: str, name: str, log_type: LogType) -> EntrySchema:
        entry = EntrySchema(
            prefix=prefix, name=name, type=log_type, group=f"e{len(self.entries)}"
        )
        self.entries[entry.key] = entry
        return entry

    def prefixes(self) -> list[str]:
        """Distinct prefixes, in first-recorded order."""
        return list(dict.fromkeys(e.prefix for e in self.entries.values()))

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> LogSchema:
        return cls.model_validate_json(data)


class StreamSchema(BaseModel):
    """Schema for one instrumentation stream."""

    name: str
    kind: Literal["double", "string"]
    unit: str = ""
    dataset: str


class StreamIndex(BaseModel):
    """All instrumentation streams in a log."""

    streams: dict[str, StreamSchema] = Field(default_factory=dict)

    def add_stream(self, name: str, kind: Literal["double", "string"], unit: str = "") -> StreamSchema:
        if name in self.streams:
            raise ValueError(f"Stream '{name}' already exists.")
        stream = StreamSchema(name=name, kind=kind, unit=unit, dataset=f"s{len(self.streams)}")
        self.streams[name] = stream
        return stream

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> StreamIndex:
        return cls.model_validate_json(data)
