"""Tests for propsync.textual: Textual integration layer."""

import threading

import pytest
from textual.css.query import NoMatches

from propsync import ValueStore
from propsync import textual as ptx


class _MockApp:
    """Minimal mock matching the Textual App interface ptx needs."""

    def __init__(self, *, is_running=True):
        self.is_running = is_running
        self._call_from_thread_log = []

    def call_from_thread(self, fn, *args):
        self._call_from_thread_log.append((fn, args))
        fn(*args)


class _Changed:
    """Stand-in for Input.Changed: a message carrying a value."""

    def __init__(self, value):
        self.value = value


class TestBind:
    def test_fires_immediately(self):
        app = _MockApp()
        s = ValueStore({"user": {"firstName": "Ryan"}})
        shown = []
        ptx.bind(app, s, "user[firstName]", shown.append)
        assert shown == ["Ryan"]

    def test_follows_store_changes(self):
        app = _MockApp()
        s = ValueStore({"user": {"firstName": "Ryan"}})
        shown = []
        ptx.bind(app, s, "user.firstName", shown.append)
        s.set("user[firstName]", "Kevin")
        s.flush_dirty_props_to_pending()
        s.reinitialize_all_props({"user": {"firstName": "Kevin"}})
        assert shown == ["Ryan", "Kevin"]

    def test_skips_when_not_running(self):
        app = _MockApp(is_running=False)
        s = ValueStore({"title": "a"})
        shown = []
        ptx.bind(app, s, "title", shown.append)
        s.set("title", "b")
        assert shown == []

    def test_skips_during_pause(self):
        app = _MockApp()
        s = ValueStore({"title": "a"})
        shown = []
        ptx.bind(app, s, "title", shown.append, fire_immediately=False)
        with ptx.pause(app):
            s.set("title", "b")
        assert shown == []

    def test_dispose_stops_binding(self):
        app = _MockApp()
        s = ValueStore({"title": "a"})
        shown = []
        r = ptx.bind(app, s, "title", shown.append)
        r.dispose()
        s.set("title", "b")
        assert shown == ["a"]


class TestWriteBack:
    def test_writes_message_value(self):
        s = ValueStore({"user": {"firstName": "Ryan"}})
        handler = ptx.write_back(s, "user[firstName]")
        assert handler(_Changed("Kevin")) is True
        assert s.get_dirty_props() == {"user.firstName": "Kevin"}

    def test_unchanged_value(self):
        s = ValueStore({"title": "a"})
        handler = ptx.write_back(s, "title")
        assert handler(_Changed("a")) is False
        assert not s.is_dirty()

    def test_round_trip_with_bind(self):
        app = _MockApp()
        s = ValueStore({"title": "a"})
        shown = []
        ptx.bind(app, s, "title", shown.append)
        ptx.write_back(s, "title")(_Changed("b"))
        assert shown == ["a", "b"]


class TestReaction:
    def test_catches_nomatch(self):
        """NoMatches from widget queries are silently swallowed."""
        app = _MockApp()
        s = ValueStore({"title": "a"})

        def _raise_nomatch(v):
            raise NoMatches("TitleLabel")

        r = ptx.reaction(app, lambda: s.get("title"), _raise_nomatch)
        s.set("title", "b")
        r.dispose()

    def test_propagates_real_errors(self):
        app = _MockApp()
        s = ValueStore({"title": "a"})

        def _raise_value_error(v):
            raise ValueError("boom")

        ptx.reaction(app, lambda: s.get("title"), _raise_value_error)
        with pytest.raises(ValueError, match="boom"):
            s.set("title", "b")

    def test_thread_marshal(self):
        """Triggers from a background thread go through call_from_thread."""
        app = _MockApp()
        s = ValueStore({"title": "a"})
        shown = []
        ptx.reaction(app, lambda: s.get("title"), shown.append)

        t = threading.Thread(target=lambda: s.set("title", "b"))
        t.start()
        t.join()

        assert shown == ["b"]
        assert len(app._call_from_thread_log) == 1


class TestAutorun:
    def test_runs_and_skips_during_pause(self):
        app = _MockApp()
        s = ValueStore({"count": 1})
        log = []
        ptx.autorun(app, lambda: log.append(s.get("count")))
        assert log == [1]

        with ptx.pause(app):
            s.set("count", 2)
        assert log == [1]

    def test_fires_again_after_pause(self):
        app = _MockApp()
        s = ValueStore({"count": 1})
        log = []
        ptx.autorun(app, lambda: log.append(s.get("count")))
        with ptx.pause(app):
            s.set("count", 2)
        s.set("count", 3)
        assert log == [1, 3]

    def test_resume_runs_autorun_created_before_start(self):
        app = _MockApp(is_running=False)
        s = ValueStore({"count": 1})
        log = []
        ptx.autorun(app, lambda: log.append(s.get("count")))
        assert log == []

        app.is_running = True
        ptx.resume(app)
        assert log == [1]
        s.set("count", 2)
        assert log == [1, 2]

    def test_resume_runs_autorun_skipped_during_pause(self):
        app = _MockApp()
        s = ValueStore({"count": 1})
        log = []
        ptx.autorun(app, lambda: log.append(s.get("count")))
        with ptx.pause(app):
            s.set("count", 2)
        ptx.resume(app)
        assert log == [1, 2]
        ptx.resume(app)
        assert log == [1, 2]

    def test_catches_nomatch(self):
        app = _MockApp()
        s = ValueStore({"count": 1})
        calls = [0]

        def _fn():
            calls[0] += 1
            s.get("count")
            if calls[0] > 1:
                raise NoMatches("Widget")

        ptx.autorun(app, _fn)
        s.set("count", 2)
        assert calls[0] == 2


class TestPause:
    def test_pause_restores_on_exception(self):
        app = _MockApp()
        assert ptx.is_safe(app)

        with pytest.raises(RuntimeError):
            with ptx.pause(app):
                assert not ptx.is_safe(app)
                raise RuntimeError("oops")

        assert ptx.is_safe(app)

    def test_multiple_apps_independent(self):
        app_a = _MockApp()
        app_b = _MockApp()
        with ptx.pause(app_a):
            assert not ptx.is_safe(app_a)
            assert ptx.is_safe(app_b)
