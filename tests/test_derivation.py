"""Tests for Derivation and DerivationCache."""

import pytest

from sessionfx import CyclicDependency, NodeState, Session, UnknownDerivation


class TestDerivation:
    def test_lazy_eval(self):
        call_count = 0
        s = Session()
        s.signal("n", 5)

        def fn():
            nonlocal call_count
            call_count += 1
            return s.get("n") * 2

        d = s.define("doubled", fn)
        assert call_count == 0  # not yet evaluated
        assert d.get() == 10
        assert call_count == 1

    def test_caches_until_dirty(self):
        call_count = 0
        s = Session()
        s.signal("n", 5)

        def fn():
            nonlocal call_count
            call_count += 1
            return s.get("n") * 2

        s.define("doubled", fn)
        first = s.get("doubled")
        second = s.get("doubled")
        assert call_count == 1  # cached, no re-eval
        assert first is second

    def test_invalidation(self):
        s = Session()
        s.signal("n", 5)
        d = s.define("doubled", lambda: s.get("n") * 2)
        assert d.get() == 10
        s.set("n", 10)
        assert d.state is NodeState.DIRTY
        assert d.get() == 20
        assert d.state is NodeState.CLEAN

    def test_same_value_keeps_cache(self):
        s = Session()
        s.signal("n", 5)
        d = s.define("doubled", lambda: s.get("n") * 2)
        d.get()
        s.set("n", 5)
        assert d.state is NodeState.CLEAN
        assert d.invalidations == 0

    def test_dynamic_dependencies(self):
        s = Session()
        s.signal("flag", True)
        s.signal("a", 1)
        s.signal("b", 2)
        d = s.define("pick", lambda: s.get("a") if s.get("flag") else s.get("b"))

        assert d.get() == 1
        assert s.dependencies("pick") == ["a", "flag"]

        s.set("flag", False)
        assert d.get() == 2
        assert s.dependencies("pick") == ["b", "flag"]

        # a is no longer read, so writing it leaves the cache alone
        s.set("a", 100)
        assert d.state is NodeState.CLEAN

    def test_chained(self):
        s = Session()
        s.signal("n", 3)
        s.define("doubled", lambda: s.get("n") * 2)
        quad = s.define("quadrupled", lambda: s.get("doubled") * 2)
        assert quad.get() == 12
        s.set("n", 5)
        assert quad.get() == 20

    def test_invalidated_once_per_write(self):
        s = Session()
        s.signal("a", 1)
        s.signal("b", 1)
        d = s.define("total", lambda: s.get("a") + s.get("b"))
        d.get()
        with s.batch():
            s.set("a", 2)
            s.set("b", 2)
        assert d.invalidations == 1
        assert d.get() == 4
        assert d.evaluations == 2

    def test_failure_leaves_dirty(self):
        s = Session()
        s.signal("n", 0)
        d = s.define("inverse", lambda: 1 / s.get("n"))
        with pytest.raises(ZeroDivisionError):
            d.get()
        assert d.state is NodeState.DIRTY
        s.set("n", 4)
        assert d.get() == 0.25

    def test_dispose(self):
        s = Session()
        s.signal("n", 5)
        d = s.define("doubled", lambda: s.get("n") * 2)
        d.get()
        d.dispose()
        assert s.dependencies("doubled") == []
        s.set("n", 10)
        # get() re-evaluates from scratch since dispose cleared everything
        assert d.get() == 20

    def test_repr(self):
        s = Session()
        d = s.define("one", lambda: 1)
        assert repr(d) == "Derivation(one, dirty)"
        d.get()
        assert repr(d) == "Derivation(one, cached=1)"


class TestCycles:
    def test_self_reference(self):
        s = Session()
        s.define("a", lambda: s.get("a") + 1)
        with pytest.raises(CyclicDependency) as excinfo:
            s.get("a")
        assert excinfo.value.path == ("a", "a")

    def test_mutual_reference(self):
        calls = []
        s = Session()

        def a():
            calls.append("a")
            return s.get("b")

        def b():
            calls.append("b")
            return s.get("a")

        s.define("a", a)
        s.define("b", b)
        with pytest.raises(CyclicDependency) as excinfo:
            s.get("a")
        assert excinfo.value.path == ("a", "b", "a")
        assert s.state("a") is NodeState.DIRTY
        assert s.state("b") is NodeState.DIRTY

    def test_write_inside_derivation_to_own_dependency(self):
        s = Session()
        s.signal("n", 1)

        def bad():
            value = s.get("n")
            s.set("n", value + 1)
            return value

        s.define("bad", bad)
        with pytest.raises(CyclicDependency):
            s.get("bad")


class TestDerivationCache:
    def test_unknown(self):
        s = Session()
        with pytest.raises(UnknownDerivation, match="Unknown derivation"):
            s.derivations.get("missing")

    def test_calc_decorator(self):
        s = Session()
        s.signal("n", 7)

        @s.calc
        def doubled():
            return s.get("n") * 2

        assert doubled.get() == 14
        assert s.get("doubled") == 14
        s.set("n", 3)
        assert doubled.get() == 6
        assert "doubled" in s.derivations
