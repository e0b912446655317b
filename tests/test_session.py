"""Tests for Session: isolation, introspection and lifecycle."""

import pytest

from sessionfx import NodeState, Session, UnknownName, UnknownSignal


class TestIsolation:
    def test_sessions_do_not_share_values(self):
        a = Session("a")
        b = Session("b")
        a.signal("x", 1)
        b.signal("x", 2)
        a.set("x", 10)
        assert a.get("x") == 10
        assert b.get("x") == 2

    def test_sessions_do_not_share_effects(self):
        a = Session()
        b = Session()
        for s in (a, b):
            s.signal("x", 0)
        log_a, log_b = [], []
        a.on_change("log", [], lambda: log_a.append(a.get("x")))
        b.on_change("log", [], lambda: log_b.append(b.get("x")))
        a.set("x", 1)
        assert log_a == [0, 1]
        assert log_b == [0]

    def test_cross_session_reads_record_no_edge(self):
        a = Session()
        b = Session()
        a.signal("x", 1)
        b.define("mirror", lambda: a.get("x"))
        assert b.get("mirror") == 1
        assert b.dependencies("mirror") == []

    def test_generated_ids_are_unique(self):
        assert Session().id != Session().id


class TestReads:
    def test_get_signal_and_derivation(self):
        s = Session()
        s.signal("x", 3)
        s.define("sq", lambda: s.get("x") ** 2)
        assert s.get("x") == 3
        assert s["sq"] == 9

    def test_effect_is_not_readable(self):
        s = Session()
        s.on_change("fx", [], lambda: None)
        with pytest.raises(UnknownSignal):
            s.get("fx")

    def test_contains(self):
        s = Session()
        s.signal("x")
        assert "x" in s
        assert "y" not in s


class TestIntrospection:
    def test_states(self):
        s = Session()
        s.signal("x", 1)
        s.define("d", lambda: s.get("x"))
        assert s.state("x") is NodeState.CLEAN
        assert s.state("d") is NodeState.DIRTY
        s.get("d")
        assert s.state("d") is NodeState.CLEAN

    def test_graph(self):
        s = Session()
        s.signal("x", 1)
        s.signal("y", 2)
        s.define("total", lambda: s.get("x") + s.get("y"))
        s.on_change("show", [], lambda: s.get("total"))
        assert s.dependencies("total") == ["x", "y"]
        assert s.dependencies("show") == ["total"]
        assert s.dependents("x") == ["total"]
        assert s.dependents("total") == ["show"]

    def test_unknown_node(self):
        s = Session()
        with pytest.raises(UnknownName, match="Unknown name: 'ghost'"):
            s.dependencies("ghost")

    def test_repr(self):
        s = Session("abc")
        s.signal("x")
        assert repr(s) == "Session(abc, signals=1, derivations=0, effects=0)"


class TestClose:
    def test_close_stops_effects(self):
        s = Session()
        s.signal("x", 0)
        log = []
        s.on_change("log", [], lambda: log.append(s.get("x")))
        s.close()
        s.set("x", 1)
        assert log == [0]
        assert s.get("x") == 1
        assert s.closed

    def test_close_is_idempotent(self):
        s = Session()
        s.close()
        s.close()
        assert s.closed
