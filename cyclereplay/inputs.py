"""Capture/restore contract for subsystem input bundles.

Every input bundle implements two symmetric operations:

    serialize(table)  — write every field into the table under a stable key
    restore(table)    — read every field back, defaulting to its current value

Because restore() always passes the field's current value as the default,
restoring from a table that lacks some keys leaves those fields untouched.

For plain dataclasses, AutoLoggedInputs derives both operations:

    @dataclass
    class ArmInputs(AutoLoggedInputs):
        position_rad: float = 0.0
        currents: list[float] = field(default_factory=list)
        limit_switches: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=bool))
        applied_volts: float = field(default=0.0, metadata={"key": "AppliedVoltage"})
"""

from __future__ import annotations

import collections.abc
import dataclasses
import functools
import typing
from typing import Any, Protocol, runtime_checkable

import numpy as np

from cyclereplay.table import LogTable, LogType, infer_type, make_value


@runtime_checkable
class LoggableInputs(Protocol):
    """A bundle of externally observed inputs that can be logged and replayed."""

    def serialize(self, table: LogTable) -> None: ...

    def restore(self, table: LogTable) -> None: ...


def camel_case(name: str) -> str:
    """Convert a snake_case field name to the CamelCase key used in logs."""
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


_SCALAR_TYPES: dict[type, LogType] = {
    bool: LogType.BOOLEAN,
    int: LogType.INTEGER,
    float: LogType.DOUBLE,
    str: LogType.STRING,
}

_ELEMENT_TYPES: dict[type, LogType] = {
    bool: LogType.BOOLEAN_ARRAY,
    int: LogType.INTEGER_ARRAY,
    float: LogType.DOUBLE_ARRAY,
    str: LogType.STRING_ARRAY,
}


def _dtype_type(dtype: Any) -> LogType | None:
    return infer_type(np.zeros(0, dtype=dtype))


def annotation_type(hint: Any, metadata: collections.abc.Mapping[str, Any]) -> LogType | None:
    """LogType declared for a field, or None if the declaration names none.

    Field metadata wins: ``metadata["type"]`` names a LogType directly and
    ``metadata["dtype"]`` gives the element dtype of an ndarray field.
    Otherwise scalars map by annotation (``float`` is always a double) and
    ``list[float]``, ``tuple[str, ...]``, ``NDArray[np.int64]`` and the
    like map to the matching array type.
    """
    if "type" in metadata:
        return LogType(metadata["type"])
    if "dtype" in metadata:
        return _dtype_type(metadata["dtype"])
    if hint in _SCALAR_TYPES:
        return _SCALAR_TYPES[hint]

    origin = typing.get_origin(hint)
    args = [a for a in typing.get_args(hint) if a is not Ellipsis]
    if origin is np.ndarray and len(args) == 2:
        scalar = typing.get_args(args[1])
        if scalar and isinstance(scalar[0], type):
            return _dtype_type(scalar[0])
        return None
    if origin in (list, tuple, collections.abc.Sequence) and args:
        if all(a is args[0] for a in args):
            return _ELEMENT_TYPES.get(args[0])
    return None


def _container(hint: Any) -> type | None:
    for container in (list, tuple):
        if hint is container or typing.get_origin(hint) is container:
            return container
    return None


@dataclasses.dataclass(frozen=True)
class _FieldSpec:
    name: str
    key: str
    log_type: LogType | None
    container: type | None


@functools.lru_cache(maxsize=None)
def _field_specs(cls: type) -> tuple[_FieldSpec, ...]:
    hints = typing.get_type_hints(cls)
    return tuple(
        _FieldSpec(
            name=f.name,
            key=f.metadata.get("key", camel_case(f.name)),
            log_type=annotation_type(hints.get(f.name), f.metadata),
            container=_container(hints.get(f.name)),
        )
        for f in dataclasses.fields(cls)
    )


class AutoLoggedInputs:
    """Dataclass mixin that serializes and restores every dataclass field.

    The log key is the field's ``metadata["key"]`` if given, otherwise the
    CamelCase form of the field name. The stored type comes from the field
    annotation (see annotation_type), so a ``float`` field holding ``0``
    or an empty ``list[float]`` still logs as a double or double array.

    Fields whose annotation names no element type (bare ``list``,
    ``np.ndarray`` without a dtype) fall back to the runtime value's type.
    The first type seen is kept for later empty values; while such a field
    has only ever been empty it is left out of the table.
    """

    @classmethod
    def _specs(cls) -> tuple[_FieldSpec, ...]:
        if not dataclasses.is_dataclass(cls):
            raise TypeError(f"{cls.__name__} must be a dataclass to use AutoLoggedInputs")
        return _field_specs(cls)

    @classmethod
    def log_keys(cls) -> dict[str, str]:
        """Mapping of field name to log key."""
        return {spec.name: spec.key for spec in cls._specs()}

    def _seen_types(self) -> dict[str, LogType]:
        return self.__dict__.setdefault("_seen_log_types", {})

    def serialize(self, table: LogTable) -> None:
        seen = self._seen_types()
        for spec in self._specs():
            value = getattr(self, spec.name)
            log_type = spec.log_type
            if log_type is None:
                log_type = infer_type(value) or seen.get(spec.name)
                if log_type is None:
                    continue
                seen[spec.name] = log_type
            table.put_value(spec.key, make_value(log_type, value))

    def restore(self, table: LogTable) -> None:
        seen = self._seen_types()
        for spec in self._specs():
            stored = table.get_value(spec.key)
            if stored is None:
                continue
            log_type = spec.log_type or seen.setdefault(spec.name, stored.type)
            value = table.get_typed(spec.key, log_type, None)
            if spec.container is not None and log_type.is_array:
                value = spec.container(value.tolist() if isinstance(value, np.ndarray) else value)
            setattr(self, spec.name, value)
