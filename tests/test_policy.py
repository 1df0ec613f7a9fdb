"""Unit tests for special token policies."""

import pytest

import ranktok as rtok
from ranktok import PolicyKind, SpecialPolicy

KNOWN = {"<A>", "<B>", "<C>"}


def test_allow_all_resolves_every_literal():
    allowed, disallowed = rtok.ALLOW_ALL.resolve(KNOWN)
    assert allowed == KNOWN
    assert disallowed == frozenset()


def test_allow_none_disallows_every_literal():
    allowed, disallowed = rtok.ALLOW_NONE.resolve(KNOWN)
    assert allowed == frozenset()
    assert disallowed == KNOWN


def test_allow_set_splits_known_literals():
    allowed, disallowed = SpecialPolicy.allow_set({"<A>"}).resolve(KNOWN)
    assert allowed == {"<A>"}
    assert disallowed == {"<B>", "<C>"}


def test_allow_set_ignores_unknown_literals(caplog):
    allowed, disallowed = SpecialPolicy.allow_set({"<A>", "<Z>"}).resolve(KNOWN)
    assert allowed == {"<A>"}
    assert "<Z>" not in disallowed
    assert "<Z>" in caplog.text


def test_policies_are_values():
    assert SpecialPolicy.allow_set(["<A>"]) == SpecialPolicy.allow_set({"<A>"})
    assert SpecialPolicy.allow_all() == rtok.ALLOW_ALL
    assert SpecialPolicy.allow_set({"<A>"}).kind is PolicyKind.SET


def test_get_policy_by_name():
    assert rtok.get_policy("all") is rtok.ALLOW_ALL
    assert rtok.get_policy("none") is rtok.ALLOW_NONE
    assert rtok.get_policy("set", allowed_subset={"<A>"}).allowed == {"<A>"}
    assert rtok.list_policies() == ["all", "set", "none"]


def test_get_policy_errors():
    with pytest.raises(rtok.PolicyError):
        rtok.get_policy("bogus")  # type: ignore[call-overload]
    with pytest.raises(rtok.PolicyError):
        rtok.get_policy("set")  # type: ignore[call-overload]
