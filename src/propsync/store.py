"""ValueStore: a component's props across server round trips.

Three layers resolve every name, highest precedence first:

- dirty: changed locally, not yet sent,
- pending: sent, confirmation outstanding,
- original: last state acknowledged by the server.

The orchestrator that owns the request drives the lifecycle:

    store.flush_dirty_props_to_pending()         # request dispatched
    store.reinitialize_all_props(new_props)      # ...succeeded
    store.push_pending_props_back_to_dirty()     # ...or failed

Exactly one of the two completion calls must follow each flush. The store
cannot detect a missing one; pending simply stays populated.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from propsync.paths import get_deep_data, is_top_level, normalize_name
from propsync.reactive import Revision, action
from propsync.values import (
    IDENTIFIER_KEY,
    UNDEFINED,
    ValueKind,
    classify,
    find_identifier,
    same_value,
)

logger = logging.getLogger("propsync.store")


class ValueStore:
    """Three-layer prop store: original, pending and dirty.

    Names may be passed in bracketed form; they are normalized before any
    lookup or write. Missing values resolve to UNDEFINED, never an error.
    """

    def __init__(
        self,
        props: Mapping[str, object] | None = None,
        *,
        identifier_key: str = IDENTIFIER_KEY,
    ) -> None:
        self._identifier_key = identifier_key
        self._props: dict[str, object] = dict(props) if props else {}
        self._dirty_props: dict[str, object] = {}
        self._pending_props: dict[str, object] = {}
        self._revision = Revision()

    @property
    def identifier_key(self) -> str:
        return self._identifier_key

    @property
    def revision(self) -> Revision:
        return self._revision

    def get(self, name: str) -> object:
        """Resolve a name through dirty, pending, then original props.

        Top-level references resolve to their identifier, so
        ``{"user": {"@id": 123, "firstName": "Ryan"}}`` gives ``get("user") == 123``
        while ``get("user.firstName") == "Ryan"``.
        """
        self._revision.track()
        return self._resolve(normalize_name(name))

    def _resolve(self, normalized: str) -> object:
        value = self._dirty_props.get(normalized, UNDEFINED)
        if value is not UNDEFINED:
            return value

        value = self._pending_props.get(normalized, UNDEFINED)
        if value is not UNDEFINED:
            return value

        value = get_deep_data(self._props, normalized)
        if value is None:
            return None

        if (
            is_top_level(normalized)
            and classify(value, self._identifier_key) is ValueKind.REFERENCE
        ):
            return find_identifier(value, self._identifier_key)

        return value

    def has(self, name: str) -> bool:
        return self.get(name) is not UNDEFINED

    def set(self, name: str, value: object) -> bool:
        """Record a local edit. Returns False if the value is unchanged."""
        normalized = normalize_name(name)
        if same_value(self._resolve(normalized), value):
            return False

        self._dirty_props[normalized] = value
        self._revision.bump()
        return True

    @action
    def update(self, values: Mapping[str, object]) -> bool:
        changed = False
        for name, value in values.items():
            if self.set(name, value):
                changed = True
        return changed

    def get_original_props(self) -> dict[str, object]:
        return dict(self._props)

    def get_dirty_props(self) -> dict[str, object]:
        return dict(self._dirty_props)

    def get_pending_props(self) -> dict[str, object]:
        return dict(self._pending_props)

    def is_dirty(self) -> bool:
        return bool(self._dirty_props)

    def has_pending(self) -> bool:
        return bool(self._pending_props)

    def flush_dirty_props_to_pending(self) -> None:
        """Called when an update request is dispatched.

        Edits made after this call land in a fresh dirty layer and are not
        part of the outstanding request.
        """
        self._pending_props = dict(self._dirty_props)
        self._dirty_props = {}
        logger.debug("Flushed %d dirty props to pending", len(self._pending_props))
        self._revision.bump()

    def reinitialize_all_props(self, props: Mapping[str, object]) -> None:
        """Called when an update request succeeded.

        Dirty props are left alone: edits made during the round trip are
        sent with the next request.
        """
        self._props = dict(props)
        self._pending_props = {}
        logger.debug(
            "Reinitialized %d props, %d dirty props kept",
            len(self._props),
            len(self._dirty_props),
        )
        self._revision.bump()

    def push_pending_props_back_to_dirty(self) -> None:
        """Called when an update request failed.

        Pending props return to dirty, except where a newer local edit exists.
        """
        restored = [name for name in self._pending_props if name not in self._dirty_props]
        self._dirty_props = {**self._pending_props, **self._dirty_props}
        self._pending_props = {}
        logger.debug("Request failed, %d pending props restored to dirty", len(restored))
        self._revision.bump()

    def reinitialize_provided_props(self, props: Mapping[str, object]) -> bool:
        """Reinitialize only the given top-level props; leave the rest untouched.

        Used when a parent re-renders and sends fresh read-only props for
        this component. A prop is replaced only when its identity changed:
        if "user" goes from ``{"@id": 123, ...}`` to ``{"@id": 456, ...}``
        the whole value, embedded writable fields included, is overwritten.
        Same identifier, different embedded fields: nothing happens.

        Returns True if any prop was replaced.
        """
        changed = False
        for key, value in props.items():
            current_identifier = self._resolve(normalize_name(key))
            new_identifier = find_identifier(value, self._identifier_key)
            if same_value(current_identifier, new_identifier):
                continue

            logger.debug(
                "Provided prop %r changed identity: %r -> %r",
                key,
                current_identifier,
                new_identifier,
            )
            self._props[key] = value
            changed = True

        if changed:
            self._revision.bump()
        return changed

    def __repr__(self) -> str:
        return (
            f"ValueStore(original={len(self._props)}, "
            f"pending={len(self._pending_props)}, dirty={len(self._dirty_props)})"
        )
