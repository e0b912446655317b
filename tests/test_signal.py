"""Tests for Signal and SignalStore."""

import threading

import pytest

from sessionfx import DuplicateName, Session, UnknownSignal


class _Elementwise:
    def __bool__(self):
        raise ValueError("truth value is ambiguous")


class _Grid:
    def __eq__(self, other):
        return _Elementwise()

    __hash__ = object.__hash__


class TestSignal:
    def test_get_set(self):
        s = Session()
        s.signal("x", 42)
        assert s.get("x") == 42
        s.set("x", 100)
        assert s.get("x") == 100

    def test_declare_returns_handle(self):
        s = Session()
        x = s.signal("x", "a")
        assert x.name == "x"
        assert x.get() == "a"
        assert x.peek() == "a"

    def test_dedup(self):
        """Writing the value already held does not re-run dependents."""
        s = Session()
        s.signal("x", 42)
        log = []
        s.on_change("log", [], lambda: log.append(s.get("x")))
        assert log == [42]
        s.set("x", 42)
        assert log == [42]

    def test_notifies_dependents(self):
        s = Session()
        s.signal("x", "hello")
        log = []
        s.on_change("log", [], lambda: log.append(s.get("x")))
        s.set("x", "world")
        assert log == ["hello", "world"]

    def test_change_detection_off_always_notifies(self):
        s = Session(change_detection=False)
        s.signal("x", 1)
        log = []
        s.on_change("log", [], lambda: log.append(s.get("x")))
        s.set("x", 1)
        assert log == [1, 1]

    def test_values_without_bool_equality(self):
        """Array-like values whose comparison has no truth value still land."""
        s = Session()
        first, second = _Grid(), _Grid()
        s.signal("grid", first)
        log = []
        s.on_change("log", [], lambda: log.append(s.get("grid")))
        s.set("grid", second)
        assert s.get("grid") is second
        assert log[0] is first
        assert log[1] is second
        s.set("grid", second)
        assert len(log) == 2

    def test_peek_does_not_track(self):
        s = Session()
        x = s.signal("x", 1)
        log = []
        s.on_change("log", [], lambda: log.append(x.peek()))
        s.set("x", 2)
        assert log == [1]

    def test_repr(self):
        s = Session()
        x = s.signal("x", 5)
        assert "Signal(x=5)" in repr(x)


class TestSignalStore:
    def test_unknown_get(self):
        s = Session()
        with pytest.raises(UnknownSignal) as excinfo:
            s.signals.get("nope")
        assert excinfo.value.name == "nope"

    def test_unknown_set(self):
        s = Session()
        with pytest.raises(UnknownSignal):
            s.set("nope", 1)

    def test_unknown_is_lookup_error(self):
        s = Session()
        with pytest.raises(LookupError):
            s.get("nope")

    def test_auto_declare(self):
        s = Session(auto_declare=True)
        s.set("fresh", 3)
        assert s.get("fresh") == 3
        assert "fresh" in s.signals

    def test_duplicate_name(self):
        s = Session()
        s.signal("x", 1)
        with pytest.raises(DuplicateName):
            s.signal("x", 2)

    def test_names_shared_with_derivations(self):
        s = Session()
        s.define("x", lambda: 1)
        with pytest.raises(DuplicateName):
            s.signal("x", 2)

    def test_container_protocol(self):
        s = Session()
        s.signal("a", 1)
        s.signal("b", 2)
        assert len(s.signals) == 2
        assert list(s.signals) == ["a", "b"]
        assert "a" in s.signals
        assert "c" not in s.signals


class TestScheduler:
    def test_same_thread_is_synchronous(self):
        s = Session()
        s.signal("x", 0)
        calls = []
        s.set_scheduler(lambda fn: calls.append(fn))
        s.set("x", 1)
        assert s.get("x") == 1
        assert calls == []

    def test_other_thread_is_marshaled(self):
        s = Session()
        s.signal("x", 0)
        queued = []
        s.set_scheduler(queued.append)

        t = threading.Thread(target=lambda: s.set("x", 5))
        t.start()
        t.join()

        assert s.get("x") == 0  # not applied yet
        assert len(queued) == 1
        queued[0]()
        assert s.get("x") == 5
