"""Change notification: reactions that re-run when a store changes.

Every ValueStore owns a Revision. Reading a value inside a Reaction
registers that Revision as a dependency; any mutation of the store bumps
it and schedules the reaction to run again.

Mutations inside an @action or ``with transaction()`` are coalesced:
dependents run once, when the outermost scope exits.

A failing reaction never starves the others: every scheduled reaction
runs, then the first error is re-raised to the code that triggered them.
"""

from __future__ import annotations

import contextvars
import functools
import logging
from contextlib import contextmanager
from typing import Callable, Iterable, ParamSpec, TypeVar

from propsync.values import same_value

logger = logging.getLogger("propsync.reactive")

P = ParamSpec("P")
R = TypeVar("R")
T = TypeVar("T")

_UNSET = object()

# The reaction currently evaluating. Revision.track() attaches to it.
_current: contextvars.ContextVar[Reaction | None] = contextvars.ContextVar(
    "propsync_current_reaction", default=None
)

_batch_depth: int = 0

# Insertion-ordered so reactions run in the order they were first scheduled.
_pending: dict[Reaction, None] = {}


class Revision:
    """Monotonic change counter observed by reactions."""

    __slots__ = ("_value", "_observers")

    def __init__(self) -> None:
        self._value = 0
        # Insertion-ordered: observers are notified in subscription order.
        self._observers: dict[Reaction, None] = {}

    @property
    def value(self) -> int:
        self.track()
        return self._value

    def track(self) -> None:
        """Register the currently evaluating reaction, if any."""
        current = _current.get()
        if current is not None:
            self._add_observer(current)

    def bump(self) -> None:
        self._value += 1
        _run_each(list(self._observers), _schedule)

    def _add_observer(self, observer: Reaction) -> None:
        self._observers[observer] = None
        observer._dependencies.add(self)

    def _remove_observer(self, observer: Reaction) -> None:
        self._observers.pop(observer, None)

    def __repr__(self) -> str:
        return f"Revision({self._value})"


class Reaction:
    """Side effect that re-runs whenever a tracked revision bumps."""

    def __init__(self, fn: Callable[[], None]) -> None:
        self._fn = fn
        self._dependencies: set[Revision] = set()
        self._disposed = False
        self._keep = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def run(self) -> None:
        """Run now, re-tracking dependencies. No-op once disposed."""
        self._run()

    def _run(self) -> None:
        if self._disposed:
            return
        previous = self._untrack()
        self._keep = False
        token = _current.set(self)
        try:
            self._fn()
        finally:
            _current.reset(token)
            self._restore(previous)

    def _restore(self, previous: set[Revision]) -> None:
        """Re-subscribe to the previous run's revisions if keep_dependencies() was called."""
        if not self._keep:
            return
        self._keep = False
        for dep in previous:
            dep._add_observer(self)

    def _untrack(self) -> set[Revision]:
        previous = set(self._dependencies)
        for dep in previous:
            dep._remove_observer(self)
        self._dependencies.clear()
        return previous

    def dispose(self) -> None:
        """Stop this reaction and disconnect it from every revision."""
        self._disposed = True
        self._untrack()
        _pending.pop(self, None)

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"{type(self).__name__}({getattr(self._fn, '__name__', self._fn)!r}, {state})"


class _DataReaction(Reaction):
    """reaction(data_fn, effect_fn): effect only fires when data_fn's result changes."""

    def __init__(self, data_fn: Callable[[], T], effect_fn: Callable[[T], None]) -> None:
        super().__init__(data_fn)
        self._effect_fn = effect_fn
        self._last_value: object = _UNSET

    def _run(self) -> None:
        if self._disposed:
            return
        self._untrack()
        token = _current.set(self)
        try:
            new_value = self._fn()
        finally:
            _current.reset(token)

        previous, self._last_value = self._last_value, new_value
        if previous is _UNSET or not same_value(previous, new_value):
            # Effects run untracked; reads inside them add no dependencies.
            self._effect_fn(new_value)

    def _prime(self) -> None:
        """Evaluate data_fn to record dependencies without firing the effect."""
        token = _current.set(self)
        try:
            self._last_value = self._fn()
        finally:
            _current.reset(token)


def _schedule(reaction: Reaction) -> None:
    if _batch_depth > 0:
        _pending[reaction] = None
    else:
        reaction._run()


def _begin_batch() -> None:
    global _batch_depth
    _batch_depth += 1


def _end_batch() -> None:
    global _batch_depth
    _batch_depth -= 1
    if _batch_depth == 0:
        _flush_pending()


def _flush_pending() -> None:
    errors: list[Exception] = []
    while _pending:
        batch = list(_pending)
        _pending.clear()
        errors.extend(_collect_errors(batch, lambda r: r._run()))
    _raise_first(errors)


def _run_each(reactions: Iterable[Reaction], fn: Callable[[Reaction], None]) -> None:
    _raise_first(_collect_errors(reactions, fn))


def _collect_errors(
    reactions: Iterable[Reaction], fn: Callable[[Reaction], None]
) -> list[Exception]:
    errors: list[Exception] = []
    for r in reactions:
        try:
            fn(r)
        except Exception as exc:
            errors.append(exc)
    return errors


def _raise_first(errors: list[Exception]) -> None:
    if not errors:
        return
    for exc in errors[1:]:
        logger.error("Reaction failed", exc_info=exc)
    raise errors[0]


def current_reaction() -> Reaction | None:
    """The reaction currently evaluating, or None outside of one."""
    return _current.get()


def keep_dependencies() -> None:
    """Keep the running reaction subscribed to what its previous run tracked.

    For reactions that skip their body (e.g. while a UI is paused): without
    this, a run that reads nothing leaves the reaction watching nothing.
    """
    current = _current.get()
    if current is not None:
        current._keep = True


def get_pending_count() -> int:
    """Number of reactions waiting for the current batch to end."""
    return len(_pending)


def autorun(fn: Callable[[], None]) -> Reaction:
    """Run fn now, then again whenever a store it read changes.

    Usage:
        store = ValueStore({"count": 0})
        log = []
        r = autorun(lambda: log.append(store.get("count")))
        # log == [0]
        store.set("count", 1)
        # log == [0, 1]
        r.dispose()
    """
    r = Reaction(fn)
    r._run()
    return r


def reaction(
    data_fn: Callable[[], T],
    effect_fn: Callable[[T], None],
    *,
    fire_immediately: bool = False,
) -> Reaction:
    """Track data_fn; call effect_fn with its result whenever that result changes.

    Results are compared with same_value(), so a store mutation that leaves
    the selected value alone does not fire the effect.
    """
    r = _DataReaction(data_fn, effect_fn)
    if fire_immediately:
        r._run()
    else:
        r._prime()
    return r


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: defer reactions triggered inside fn until it returns."""

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        _begin_batch()
        try:
            return fn(*args, **kwargs)
        finally:
            _end_batch()

    return wrapper


@contextmanager
def transaction():
    """Context manager form of @action.

        with transaction():
            store.set("firstName", "Ryan")
            store.set("lastName", "Weaver")
            # reactions run here, once
    """
    _begin_batch()
    try:
        yield
    finally:
        _end_batch()
