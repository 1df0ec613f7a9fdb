"""Unit tests for RankTable construction invariants and lookups."""

import pytest

from ranktok import ConfigError, DecodeError, RankTable


def _single_bytes() -> dict[bytes, int]:
    return {bytes([b]): b for b in range(256)}


# Construction invariants
# ---------------------------------------------------------------------------


def test_missing_single_bytes_rejected():
    ranks = _single_bytes()
    del ranks[b"a"]
    del ranks[b"b"]
    with pytest.raises(ConfigError) as excinfo:
        RankTable(ranks, {})
    assert excinfo.value.missing_bytes == [ord("a"), ord("b")]


def test_duplicate_ordinary_ranks_rejected():
    ranks = _single_bytes()
    ranks[b"ab"] = 5
    with pytest.raises(ConfigError) as excinfo:
        RankTable(ranks, {})
    assert excinfo.value.overlapping == {5}


def test_duplicate_special_ranks_rejected():
    with pytest.raises(ConfigError):
        RankTable(_single_bytes(), {"<a>": 300, "<b>": 300})


def test_special_ranks_must_not_overlap_ordinary_ranks():
    with pytest.raises(ConfigError) as excinfo:
        RankTable(_single_bytes(), {"<|endoftext|>": 42})
    assert excinfo.value.overlapping == {42}


def test_explicit_vocab_size_checked():
    RankTable(_single_bytes(), {"<eot>": 256}, explicit_n_vocab=257)
    with pytest.raises(ConfigError):
        RankTable(_single_bytes(), {"<eot>": 256}, explicit_n_vocab=300)
    # right count but a gap before the special token
    with pytest.raises(ConfigError):
        RankTable(_single_bytes(), {"<eot>": 400}, explicit_n_vocab=257)


# Lookups
# ---------------------------------------------------------------------------


def test_decoder_is_inverse_of_encoder(toy_ranks):
    table = RankTable(toy_ranks, {"<eot>": 1000})
    for token, rank in table.encoder.items():
        assert table.decoder[rank] == token
    assert len(table.decoder) == len(table.encoder)


def test_resolve_ordinary_and_special(toy_ranks):
    table = RankTable(toy_ranks, {"<eot>": 1000})
    assert table.resolve(259) == b"hello"
    assert table.resolve(1000) == b"<eot>"
    with pytest.raises(DecodeError):
        table.resolve(5000)


def test_sizes(toy_ranks):
    table = RankTable(toy_ranks, {"<eot>": 1000})
    assert table.max_token_value == 1000
    assert table.n_vocab == 1001
    assert len(table) == len(toy_ranks) + 1
    assert table.lookup(b"hello") == 259
    assert table.lookup(b"nope") is None


def test_tables_are_read_only(toy_ranks):
    table = RankTable(toy_ranks, {})
    with pytest.raises(TypeError):
        table.encoder[b"zz"] = 9999  # type: ignore[index]
