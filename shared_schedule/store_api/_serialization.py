"""Document encoding between record dicts and the stored camelCase layout."""

from __future__ import annotations

import enum
import re
from datetime import date, datetime, time
from typing import Any

_CAMEL_TO_SNAKE = re.compile(r"(?<=[a-z0-9])([A-Z])")
_SNAKE_TO_CAMEL = re.compile(r"_([a-z])")


def _to_snake(name: str) -> str:
    return _CAMEL_TO_SNAKE.sub(r"_\1", name).lower()


def _to_camel(name: str) -> str:
    return _SNAKE_TO_CAMEL.sub(lambda m: m.group(1).upper(), name)


def field_name(name: str) -> str:
    """Return the stored (camelCase) name of a snake_case record field."""
    return _to_camel(name)


def decamelize(data: Any) -> Any:
    """Recursively convert all dict keys from camelCase to snake_case."""
    if isinstance(data, dict):
        return {_to_snake(k): decamelize(v) for k, v in data.items()}
    if isinstance(data, list):
        return [decamelize(item) for item in data]
    return data


def camelize(data: Any) -> Any:
    """Recursively convert all dict keys from snake_case to camelCase.

    Values are made JSON-safe on the way: dates and times become ISO
    strings, enums their values, tuples lists.
    """
    if isinstance(data, dict):
        return {_to_camel(k): camelize(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [camelize(item) for item in data]
    if isinstance(data, enum.Enum):
        return data.value
    if isinstance(data, (datetime, date, time)):
        return data.isoformat()
    return data
