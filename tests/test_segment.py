"""Unit tests for text segmentation and special literal partitioning."""

import pytest

from ranktok import (
    ALLOW_ALL,
    ALLOW_NONE,
    SpecialPolicy,
    SpecialTokenViolation,
    get_pattern,
)
from ranktok.pattern import compile_pattern
from ranktok.segment import (
    OrdinaryPiece,
    Segmenter,
    SpecialLiteral,
    special_token_regex,
)


@pytest.fixture
def segmenter():
    return Segmenter(compile_pattern(get_pattern("gpt2")), {"<A>", "<B>"})


def test_split_ordinary_gpt2(segmenter):
    pieces = list(segmenter.split_ordinary("Hello world's 123!"))
    assert pieces == [b"Hello", b" world", b"'s", b" 123", b"!"]


def test_split_ordinary_encodes_utf8(segmenter):
    assert list(segmenter.split_ordinary("日本")) == ["日本".encode("utf-8")]


def test_segment_keeps_order_and_coverage(segmenter):
    segments = list(segmenter.segment("hi <A> there<B>", ALLOW_ALL))
    assert segments == [
        OrdinaryPiece(b"hi"),
        OrdinaryPiece(b" "),
        SpecialLiteral("<A>"),
        OrdinaryPiece(b" there"),
        SpecialLiteral("<B>"),
    ]


def test_segment_without_special_tokens(segmenter):
    segments = list(segmenter.segment("plain text", ALLOW_NONE))
    assert segments == [OrdinaryPiece(b"plain"), OrdinaryPiece(b" text")]


def test_violation_raised_before_any_segment(segmenter):
    with pytest.raises(SpecialTokenViolation) as excinfo:
        segmenter.segment("ok <B>", SpecialPolicy.allow_set({"<A>"}))
    assert excinfo.value.found_tokens == {"<B>"}


def test_longer_literal_wins():
    seg = Segmenter(compile_pattern(get_pattern("gpt2")), {"<|a|>", "<|a|>x"})
    segments = list(seg.segment("<|a|>x<|a|>", ALLOW_ALL))
    assert segments == [SpecialLiteral("<|a|>x"), SpecialLiteral("<|a|>")]


def test_special_regex_escapes_metacharacters():
    pat = special_token_regex(frozenset({"a+b", "<|x|>"}))
    assert pat.findall("aab a+b <|x|>") == ["a+b", "<|x|>"]


def test_special_regex_is_memoised():
    literals = frozenset({"<A>", "<B>"})
    assert special_token_regex(literals) is special_token_regex(literals)


def test_empty_matches_are_skipped():
    seg = Segmenter(compile_pattern(r"\d*"), set())
    assert list(seg.split_ordinary("12ab3")) == [b"12", b"3"]
