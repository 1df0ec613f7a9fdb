"""
Immutable rank tables for a single vocabulary version.
"""

import logging
from collections.abc import Mapping
from types import MappingProxyType

from ..errors import ConfigError, DecodeError
from ..types import Rank

log = logging.getLogger(__name__)


class RankTable:
    """
    Bidirectional byte-sequence/rank mapping plus the special-token literals.

    Built once and read-only afterwards, so it is shared between threads
    without synchronization. Construction enforces the invariants the merge
    engine and decoder rely on:

    - every single byte has a rank (merging always terminates),
    - ordinary ranks are unique (the decoder is the exact inverse),
    - special ranks are unique and disjoint from ordinary ranks.
    """

    def __init__(
        self,
        mergeable_ranks: Mapping[bytes, Rank],
        special_tokens: Mapping[str, Rank],
        *,
        explicit_n_vocab: int | None = None,
    ) -> None:
        """
        :param mergeable_ranks: Byte sequence -> rank; ranks double as merge priority.
        :param special_tokens: Special literal -> rank.
        :param explicit_n_vocab: Expected total number of tokens, if known.
        :raises ConfigError: If any table invariant is violated.
        """
        encoder = dict(mergeable_ranks)
        special_encoder = dict(special_tokens)

        missing = [b for b in range(256) if bytes([b]) not in encoder]
        if missing:
            raise ConfigError(
                "encoder table must contain all 256 single bytes",
                missing_bytes=missing,
            )

        decoder = {rank: token for token, rank in encoder.items()}
        if len(decoder) != len(encoder):
            raise ConfigError(
                "ordinary ranks must be unique",
                overlapping=_duplicates(encoder.values()),
            )

        special_decoder = {rank: seq.encode("utf-8") for seq, rank in special_encoder.items()}
        if len(special_decoder) != len(special_encoder):
            raise ConfigError(
                "special token ranks must be unique",
                overlapping=_duplicates(special_encoder.values()),
            )

        overlap = decoder.keys() & special_decoder.keys()
        if overlap:
            raise ConfigError(
                "special token ranks overlap with ordinary ranks",
                overlapping=set(overlap),
            )

        self.max_token_value: Rank = max(
            max(decoder, default=0), max(special_decoder, default=0)
        )

        if explicit_n_vocab is not None:
            n_tokens = len(encoder) + len(special_encoder)
            if n_tokens != explicit_n_vocab:
                raise ConfigError(
                    "token count does not match explicit vocab size",
                    vocab_mismatch=(n_tokens, explicit_n_vocab),
                )
            if self.max_token_value != explicit_n_vocab - 1:
                raise ConfigError(
                    "max token value does not match explicit vocab size",
                    vocab_mismatch=(self.max_token_value + 1, explicit_n_vocab),
                )

        self.encoder: Mapping[bytes, Rank] = MappingProxyType(encoder)
        self.decoder: Mapping[Rank, bytes] = MappingProxyType(decoder)
        self.special_encoder: Mapping[str, Rank] = MappingProxyType(special_encoder)
        self.special_decoder: Mapping[Rank, bytes] = MappingProxyType(special_decoder)
        self.special_tokens_set: frozenset[str] = frozenset(special_encoder)
        self.sorted_token_bytes: tuple[bytes, ...] = tuple(sorted(encoder))

        log.debug(
            f"rank table built: {len(encoder)} ordinary tokens, "
            f"{len(special_encoder)} special tokens, max token value {self.max_token_value}"
        )

    @property
    def n_vocab(self) -> int:
        """Number of token ids up to and including the largest one."""
        return self.max_token_value + 1

    def lookup(self, token: bytes) -> Rank | None:
        """Return the ordinary rank of ``token``, if it has one."""
        return self.encoder.get(token)

    def resolve(self, rank: Rank) -> bytes:
        """
        Return the bytes behind ``rank``, ordinary or special.

        :raises DecodeError: If ``rank`` is in neither table.
        """
        token = self.decoder.get(rank)
        if token is None:
            token = self.special_decoder.get(rank)
            if token is None:
                raise DecodeError("token not found in vocabulary", invalid_tok=rank)
        return token

    def __len__(self) -> int:
        return len(self.encoder) + len(self.special_encoder)


def _duplicates(ranks) -> set[Rank]:
    seen: set[Rank] = set()
    dups: set[Rank] = set()
    for rank in ranks:
        if rank in seen:
            dups.add(rank)
        seen.add(rank)
    return dups
