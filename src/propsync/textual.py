"""Textual integration for propsync. Opt-in, requires textual.

bind() pushes store values into widgets; write_back() turns widget change
messages into store edits. Together they are the two halves of model
binding for a component rendered with Textual.

// [LAW:single-enforcer] Guard + NoMatches + thread-marshal enforced here, not at callsites.
// [LAW:locality-or-seam] Textual coupling isolated in this module; the store stays agnostic.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable

from textual.css.query import NoMatches

from propsync.paths import normalize_name
from propsync.reactive import (
    Reaction,
    autorun as _autorun,
    current_reaction,
    keep_dependencies,
    reaction as _reaction,
)
from propsync.store import ValueStore

# Keyed by id(app); an id is present only inside its pause() block.
_paused_apps: set[int] = set()

# Keyed by id(app): guarded autoruns whose body was skipped, run by resume().
_skipped: dict[int, dict[Reaction, None]] = {}


@contextmanager
def pause(app):
    """Suspend guarded reactions while widgets are being replaced."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def _guard(app, fn: Callable[..., None]) -> Callable[..., None]:
    main = threading.get_ident()

    def _safe(*args) -> None:
        try:
            fn(*args)
        except NoMatches:
            pass

    def _guarded(*args) -> None:
        if not is_safe(app):
            return
        if threading.get_ident() != main:
            app.call_from_thread(_safe, *args)
        else:
            _safe(*args)

    return _guarded


def reaction(app, data_fn, effect_fn, *, fire_immediately: bool = False) -> Reaction:
    """reaction() whose effect is guarded for a Textual app.

    Skipped while the app is paused or not running, NoMatches from widget
    queries is swallowed, and triggers from another thread are marshaled
    through app.call_from_thread.
    """
    return _reaction(data_fn, _guard(app, effect_fn), fire_immediately=fire_immediately)


def autorun(app, fn) -> Reaction:
    """autorun() guarded the same way as reaction().

    A skipped run keeps the reaction subscribed to what it read last time,
    so it fires on the next change once the app is safe again. An autorun
    that has never run its body (created before the app started) runs on
    resume(app).
    """
    guarded = _guard(app, fn)
    main = threading.get_ident()

    def _tracked() -> None:
        current = current_reaction()
        skipped = _skipped.setdefault(id(app), {})
        if not is_safe(app):
            keep_dependencies()
            skipped[current] = None
            return
        skipped.pop(current, None)
        if threading.get_ident() != main:
            # The body runs on the UI thread, outside this reaction.
            keep_dependencies()
        guarded()

    return _autorun(_tracked)


def resume(app) -> None:
    """Run the guarded autoruns skipped while app was paused or not running.

    Call from App.on_mount for autoruns created before the app started.
    """
    for r in list(_skipped.pop(id(app), {})):
        r.run()


def bind(
    app,
    store: ValueStore,
    name: str,
    effect_fn: Callable[[object], None],
    *,
    fire_immediately: bool = True,
) -> Reaction:
    """Call effect_fn with the resolved value of name whenever it changes.

    Usage:
        bind(app, store, "user[firstName]",
             lambda v: app.query_one("#first-name", Input).__setattr__("value", v))
    """
    normalized = normalize_name(name)
    return reaction(
        app,
        lambda: store.get(normalized),
        effect_fn,
        fire_immediately=fire_immediately,
    )


def write_back(store: ValueStore, name: str) -> Callable[[object], bool]:
    """Handler that writes a change message's ``.value`` into the store.

    Works with any message carrying a value, e.g. ``Input.Changed``:

        handler = write_back(store, "user[firstName]")

        def on_input_changed(self, event: Input.Changed) -> None:
            handler(event)
    """
    normalized = normalize_name(name)

    def _handler(message) -> bool:
        return store.set(normalized, message.value)

    return _handler
