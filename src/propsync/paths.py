"""Property paths: name normalization and nested lookup.

Model names may arrive in bracketed form (``user[address][city]``) or in
dotted form (``user.address.city``). Stores only ever hold the dotted form.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from propsync.values import UNDEFINED

PATH_SEPARATOR = "."


def normalize_name(name: str) -> str:
    """Convert bracketed notation to a dotted path.

        normalize_name("user[address][city]")  # "user.address.city"
        normalize_name("tags[]")               # "tags"
        normalize_name("user.firstName")       # unchanged
    """
    if name.endswith("[]"):
        name = name[:-2]
    return PATH_SEPARATOR.join(part.replace("]", "") for part in name.split("["))


def is_top_level(name: str) -> bool:
    return PATH_SEPARATOR not in name


def get_deep_data(data: object, path: str) -> object:
    """Look up a dotted path. Returns UNDEFINED for any missing step.

    None is returned as-is when it is the stored value; walking *through*
    a None (or any scalar) yields UNDEFINED instead of raising.
    """
    current = data
    for part in path.split(PATH_SEPARATOR):
        current = _child(current, part)
        if current is UNDEFINED:
            return UNDEFINED
    return current


def _child(container: object, key: str) -> object:
    if isinstance(container, Mapping):
        return container.get(key, UNDEFINED)
    if isinstance(container, Sequence) and not isinstance(container, (str, bytes)):
        if not key.isdecimal():
            return UNDEFINED
        index = int(key)
        return container[index] if index < len(container) else UNDEFINED
    return UNDEFINED
