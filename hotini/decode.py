"""
Structural decode: snapshot sections -> pydantic model or dataclass.

Top-level fields read keys of the DEFAULT section; a field whose type is a
model/dataclass reads the section with the same name (or alias). Values are
strings and pydantic coerces them ("8080" -> 8080, "true" -> True).
"""

from __future__ import annotations

import dataclasses
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, TypeAdapter, ValidationError

from hotini.errors import IniDecodeError
from hotini.parser import DEFAULT_SECTION, IniSnapshot


def _split_commas(value: Any) -> Any:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


# "a, b, c" -> ["a", "b", "c"]
CommaList = Annotated[list[str], BeforeValidator(_split_commas)]


def sections_payload(snapshot: IniSnapshot) -> dict[str, Any]:
    """DEFAULT keys at top level, every other section nested under its name."""
    data: dict[str, Any] = dict(snapshot.section(DEFAULT_SECTION))
    for name in snapshot.sections():
        if name != DEFAULT_SECTION:
            data[name] = dict(snapshot.section(name))
    return data


def _merge(base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


def decode_sections(snapshot: IniSnapshot, record: Any) -> Any:
    """
    Decode snapshot into record.

    Args:
        snapshot: Parsed file.
        record: A type pydantic can validate (model class, dataclass type, TypedDict...)
            -> a new instance is returned; or a model / dataclass instance -> keys
            present in the file are assigned onto it and the same instance returned.

    Raises:
        IniDecodeError: Contents do not fit the record; ``errors`` holds pydantic's list.
    """
    data = sections_payload(snapshot)
    try:
        if isinstance(record, BaseModel):
            model_cls = type(record)
            decoded = model_cls.model_validate(_merge(record.model_dump(by_alias=True), data))
            for name in model_cls.model_fields:
                setattr(record, name, getattr(decoded, name))
            return record
        if dataclasses.is_dataclass(record) and not isinstance(record, type):
            decoded = TypeAdapter(type(record)).validate_python(_merge(dataclasses.asdict(record), data))
            for field in dataclasses.fields(record):
                setattr(record, field.name, getattr(decoded, field.name))
            return record
        return TypeAdapter(record).validate_python(data)
    except ValidationError as e:
        raise IniDecodeError(
            f"failed to map config file {snapshot.path}: {e}",
            snapshot.path,
            errors=e.errors(),
        ) from e
