"""Unit tests for the byte-pair merge engine."""

import random

import pytest

from ranktok._bpe import (
    byte_pair_encode,
    byte_pair_merge,
    byte_pair_split,
    slow_byte_pair_merge,
)


# Toy table examples
# ---------------------------------------------------------------------------


def test_merges_down_to_single_token(abc_ranks):
    """'abc' merges ab first, then ab+c."""
    assert byte_pair_encode(b"abc", abc_ranks) == [4]


def test_unmergeable_pair_stays_split(abc_ranks):
    """'ba' has no entry, so both bytes stay separate."""
    assert byte_pair_encode(b"ba", abc_ranks) == [1, 0]


def test_single_byte_piece(abc_ranks):
    assert byte_pair_encode(b"c", abc_ranks) == [2]
    assert byte_pair_merge(b"c", abc_ranks) == [0]


def test_empty_piece_has_no_spans(abc_ranks):
    assert byte_pair_merge(b"", abc_ranks) == []


def test_lowest_rank_merges_first(abc_ranks):
    """'cab' cannot form 'ca' so only 'ab' merges."""
    assert byte_pair_split(b"cab", abc_ranks) == [b"c", b"ab"]
    assert byte_pair_encode(b"cab", abc_ranks) == [2, 3]


def test_tie_break_prefers_leftmost_pair(abc_ranks):
    """With 'aa' at two positions of 'aaa' the left pair merges."""
    ranks = dict(abc_ranks)
    ranks[b"aa"] = 300
    assert byte_pair_split(b"aaa", ranks) == [b"aa", b"a"]


def test_repeated_word_merges_each_occurrence(toy_ranks):
    """'hellohello' is not a token but both halves are."""
    assert byte_pair_encode(b"hellohello", toy_ranks) == [259, 259]


def test_merge_returns_span_starts(toy_ranks):
    assert byte_pair_merge(b"hello", toy_ranks) == [0]
    assert byte_pair_merge(b"xhello", toy_ranks) == [0, 1]


# Properties
# ---------------------------------------------------------------------------


def _random_pieces(seed: int, count: int = 300) -> list[bytes]:
    rng = random.Random(seed)
    alphabet = b"helowrdt abc"
    return [
        bytes(rng.choice(alphabet) for _ in range(rng.randint(1, 24)))
        for _ in range(count)
    ]


@pytest.mark.filterwarnings("ignore::DeprecationWarning")
def test_heap_merge_matches_reference(toy_ranks):
    """The heap-driven merge agrees with the full-rescan reference."""
    ranks = dict(toy_ranks)
    # extra overlapping merges to exercise neighbour updates
    ranks[b"lo"] = 400
    ranks[b"oh"] = 401
    ranks[b"ello"] = 402
    for piece in _random_pieces(seed=7):
        assert byte_pair_split(piece, ranks) == slow_byte_pair_merge(piece, ranks)


def test_merge_is_deterministic(toy_ranks):
    for piece in _random_pieces(seed=11, count=50):
        assert byte_pair_encode(piece, toy_ranks) == byte_pair_encode(piece, toy_ranks)


def test_merge_never_expands(toy_ranks):
    for piece in _random_pieces(seed=3):
        assert len(byte_pair_encode(piece, toy_ranks)) <= len(piece)


def test_split_covers_piece(toy_ranks):
    for piece in _random_pieces(seed=5, count=50):
        assert b"".join(byte_pair_split(piece, toy_ranks)) == piece


def test_reference_merge_is_deprecated(abc_ranks):
    with pytest.warns(DeprecationWarning):
        assert slow_byte_pair_merge(b"abc", abc_ranks) == [b"abc"]
