"""Shared fixtures: small vocabularies with full single-byte coverage."""

import pytest

import ranktok as rtok

# merged tokens in priority order; every entry is the concatenation of two
# tokens that already exist when it is added
TOY_MERGES = [
    b"he",
    b"ll",
    b"hell",
    b"hello",
    b" w",
    b"or",
    b" wor",
    b"ld",
    b" world",
    b"th",
    b"the",
    b" the",
]

ENDOFTEXT = "<|endoftext|>"
CTRL = "<CTRL>"
TOY_SPECIALS = {ENDOFTEXT: 1000, CTRL: 1001}


def build_ranks(merges: list[bytes]) -> dict[bytes, int]:
    """Single bytes get their byte value as rank, merges follow from 256."""
    ranks = {bytes([b]): b for b in range(256)}
    for idx, token in enumerate(merges):
        ranks[token] = 256 + idx
    return ranks


@pytest.fixture
def toy_ranks() -> dict[bytes, int]:
    return build_ranks(TOY_MERGES)


@pytest.fixture
def abc_ranks() -> dict[bytes, int]:
    """Table with a:0, b:1, c:2, ab:3, abc:4 and the other bytes after them."""
    ranks = {b"a": 0, b"b": 1, b"c": 2, b"ab": 3, b"abc": 4}
    rank = 5
    for b in range(256):
        if bytes([b]) not in ranks:
            ranks[bytes([b])] = rank
            rank += 1
    return ranks


@pytest.fixture
def encoding(toy_ranks) -> rtok.Encoding:
    """Return a toy encoding using the GPT-2 segmentation pattern."""
    return rtok.Encoding(
        "toy",
        pat_str=rtok.get_pattern("gpt2"),
        mergeable_ranks=toy_ranks,
        special_tokens=TOY_SPECIALS,
    )
