"""Value model: the undefined sentinel, the identifier marker, and strict equality.

A value held by a store is one of:

- a scalar (anything that is not a mapping, including None and lists),
- a reference: a mapping carrying the identifier marker ("@id"), standing
  for a server-side entity,
- a plain object: any other mapping.

All marker checks go through classify() / find_identifier().
"""

from __future__ import annotations

import enum
from collections.abc import Mapping, Sequence, Set
from typing import Any

IDENTIFIER_KEY = "@id"


class _Undefined:
    """Absence of a value. Distinct from None, which is a present null."""

    __slots__ = ()
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __reduce__(self):
        return (_Undefined, ())


UNDEFINED: Any = _Undefined()


class ValueKind(enum.Enum):
    SCALAR = "scalar"
    REFERENCE = "reference"
    OBJECT = "object"


def classify(value: object, key: str = IDENTIFIER_KEY) -> ValueKind:
    """Tag a value as a scalar, a reference, or a plain object."""
    if not isinstance(value, Mapping):
        return ValueKind.SCALAR
    if value.get(key, UNDEFINED) is UNDEFINED:
        return ValueKind.OBJECT
    return ValueKind.REFERENCE


def find_identifier(value: object, key: str = IDENTIFIER_KEY) -> object:
    """Identity of a value: the marker of a reference, the value itself otherwise.

        find_identifier({"@id": 123, "firstName": "Ryan"})  # 123
        find_identifier("Ryan")                             # "Ryan"
    """
    if classify(value, key) is ValueKind.REFERENCE:
        return value[key]
    return value


def same_value(a: object, b: object) -> bool:
    """Strict equality: containers compare by identity, scalars by value.

    Containers are mappings, sets and every sequence except str and bytes,
    tuples included. Two distinct dicts (or tuples) with the same content
    are *not* the same value, and True is not the same value as 1.
    """
    if a is b:
        return True
    if _is_container(a) or _is_container(b):
        return False
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


def _is_container(value: object) -> bool:
    if isinstance(value, (str, bytes)):
        return False
    return isinstance(value, (Mapping, Sequence, Set))
