"""
Encode/decode orchestration over a fixed rank table.
"""

import bisect
import logging
from collections.abc import Iterator, Mapping, Sequence
from enum import Enum

from .._bpe import byte_pair_encode
from ..cache import CacheInfo, SplitCache
from ..errors import DecodeError, PolicyError, TokenEncodeError
from ..parallel import ParallelMode, ParallelStrategy, run_batch
from ..pattern import compile_pattern
from ..policy import ALLOW_NONE, SpecialPolicy
from ..segment import OrdinaryPiece, Segmenter
from ..types import Rank
from .table import RankTable

log = logging.getLogger(__name__)

ENDOFTEXT = "<|endoftext|>"


class DecodeMode(str, Enum):
    """How invalid UTF-8 in decoded bytes is handled."""

    STRICT = "strict"
    # substitute U+FFFD for invalid sequences
    LOSSY = "replace"

    @classmethod
    def get(cls, name: "str | DecodeMode") -> "DecodeMode":
        """Get decode mode by name: "strict", "lossy" or "replace"."""
        if isinstance(name, DecodeMode):
            return name
        key = name.lower()
        if key == "replace":
            return cls.LOSSY
        try:
            return cls[key.upper()]
        except KeyError:
            raise PolicyError(
                "unknown decode mode",
                invalid_name=name,
                available=["strict", "lossy", "replace"],
            ) from None


class Encoding:
    """
    A byte-pair encoding over one vocabulary version.

    Ordinary text is cut into pieces by the segmentation pattern, and each
    piece is merged into ranks independently; special literals map straight to
    their reserved ranks. Decoding is pure table lookup.

    An instance is immutable apart from its split cache and is safe to share
    between threads for its entire lifetime.

    .. code-block:: python

        enc = Encoding(
            "toy",
            pat_str=get_pattern("gpt2"),
            mergeable_ranks=ranks,
            special_tokens={"<|endoftext|>": 300},
        )
        tokens = enc.encode("hello <|endoftext|>", SpecialPolicy.allow_all())
        text = enc.decode(tokens)
    """

    def __init__(
        self,
        name: str,
        *,
        pat_str: str,
        mergeable_ranks: Mapping[bytes, Rank],
        special_tokens: Mapping[str, Rank],
        explicit_n_vocab: int | None = None,
        cache_shards: int | None = None,
        cache_max_entries: int | None = None,
    ) -> None:
        """
        :param name: Name of the encoding; encodings with different special
            tokens should have different names.
        :param pat_str: Segmentation pattern used to split ordinary text.
        :param mergeable_ranks: Byte sequence -> rank; ranks must follow merge priority.
        :param special_tokens: Special literal -> rank.
        :param explicit_n_vocab: If given, checked against the total token count.
        :param cache_shards: Split cache shard count.
        :param cache_max_entries: Split cache bound per shard.
        :raises ConfigError: If the tables violate their invariants.
        :raises PatternError: If ``pat_str`` does not compile.
        """
        self.name = name
        self.pat_str = pat_str
        self._table = RankTable(
            mergeable_ranks, special_tokens, explicit_n_vocab=explicit_n_vocab
        )
        self._segmenter = Segmenter(
            compile_pattern(pat_str), self._table.special_tokens_set
        )
        self._cache = SplitCache(
            self._merge_piece,
            n_shards=cache_shards,
            max_entries=cache_max_entries,
        )
        log.debug(f"encoding {name!r} ready (pattern: {pat_str[:40]!r}...)")

    def __repr__(self) -> str:
        return f"<Encoding {self.name!r}>"

    # encoding
    # ------------------------------------------------------------------

    def encode_ordinary(self, text: str) -> list[Rank]:
        """
        Encode text without recognising special tokens.

        Text that spells a special literal is merged like any other text.
        """
        tokens: list[Rank] = []
        for piece in self._segmenter.split_ordinary(text):
            tokens.extend(self._encode_piece(piece))
        return tokens

    def encode(self, text: str, policy: SpecialPolicy | None = None) -> list[Rank]:
        """
        Encode text, emitting permitted special literals as their reserved ranks.

        Special tokens unlock model capabilities, so text that spells one is
        rejected unless the policy allows it. The default policy allows none.

        :param text: Text to encode.
        :param policy: Special token policy; ``None`` means ``ALLOW_NONE``.
        :returns: Ranks in text order.
        :raises SpecialTokenViolation: If ``text`` contains a literal the policy forbids.
        """
        tokens, _ = self._encode_tracking_last_piece(text, policy)
        return tokens

    def encode_with_unstable(
        self, text: str, policy: SpecialPolicy | None = None
    ) -> tuple[list[Rank], list[list[Rank]]]:
        """
        Encode text into stable tokens plus the token sequences that could
        continue it.

        The tokens of the last ordinary piece (and any all-whitespace tokens
        right before it) may merge differently once more text follows, so they
        are dropped from the stable tokens. Each completion is a token sequence
        whose bytes start with the dropped bytes. The stable tokens therefore
        only cover a prefix of ``text``.

        Considered experimental: the completion set may change between releases.

        :param text: Text to encode.
        :param policy: Special token policy; ``None`` means ``ALLOW_NONE``.
        :returns: ``(stable tokens, completions)``; completions are sorted.
        :raises SpecialTokenViolation: If ``text`` contains a literal the policy forbids.
        """
        tokens, last_piece_len = self._encode_tracking_last_piece(text, policy)
        if last_piece_len == 0:
            return tokens, []

        last_piece_len = self._extend_over_whitespace(tokens, last_piece_len)
        unstable = self.decode_bytes(tokens[-last_piece_len:])
        del tokens[-last_piece_len:]

        completions: set[tuple[Rank, ...]] = set()
        encoder = self._table.encoder

        # single tokens that extend the unstable bytes
        for token in self._tokens_starting_with(unstable):
            completions.add((encoder[token],))

        # a token boundary inside the unstable bytes: keep the prefix, complete
        # the suffix with any token, and re-merge until the unstable bytes are covered
        for i in range(1, len(unstable)):
            prefix, suffix = unstable[:i], unstable[i:]
            for token in self._tokens_starting_with(suffix):
                possibility = prefix + token
                try:
                    encoded = self.encode_ordinary(possibility.decode("utf-8"))
                except UnicodeDecodeError:
                    encoded = byte_pair_encode(possibility, encoder)
                seq: list[Rank] = []
                seq_len = 0
                for tok in encoded:
                    seq.append(tok)
                    seq_len += len(self._table.resolve(tok))
                    if seq_len >= len(unstable):
                        break
                completions.add(tuple(seq))

        # trailing whitespace may split off from what precedes it
        if len(unstable) > 1:
            last_char, size = _decode_last_char(unstable)
            if size < len(unstable) and last_char is not None and last_char.isspace():
                reencoded = byte_pair_encode(unstable[:-size], encoder)
                reencoded += byte_pair_encode(unstable[-size:], encoder)
                completions.add(tuple(reencoded))

        return tokens, [list(seq) for seq in sorted(completions)]

    def encode_single_token(self, piece: bytes | str) -> Rank:
        """
        Return the rank of a byte sequence or literal that is exactly one token.

        Special literals are always resolved. The ordinary table is checked
        first, for ``str`` and ``bytes`` alike.

        :raises TokenEncodeError: If ``piece`` is not a single token.
        """
        if isinstance(piece, str):
            piece = piece.encode("utf-8")

        rank = self._table.lookup(piece)
        if rank is not None:
            return rank
        try:
            return self._table.special_encoder[piece.decode("utf-8")]
        except (UnicodeDecodeError, KeyError):
            raise TokenEncodeError(
                "could not encode piece to a single token", piece=piece
            ) from None

    def encode_single_piece(self, piece: bytes | str) -> list[Rank]:
        """Merge one piece as given, without segmentation or special handling."""
        if isinstance(piece, str):
            piece = piece.encode("utf-8")
        if not piece:
            return []
        return list(self._encode_piece(piece))

    def encode_batch(
        self,
        texts: Sequence[str],
        policy: SpecialPolicy | None = None,
        *,
        num_workers: int | None = None,
        parallel_mode: ParallelStrategy | ParallelMode = "auto",
    ) -> list[list[Rank]]:
        """
        Encode many texts, in parallel where it pays off.

        :raises SpecialTokenViolation: If any text violates ``policy``; no
            partial result is returned.
        """
        return run_batch(
            lambda text: self.encode(text, policy),
            texts,
            num_workers=num_workers,
            parallel_mode=parallel_mode,
        )

    def encode_ordinary_batch(
        self,
        texts: Sequence[str],
        *,
        num_workers: int | None = None,
        parallel_mode: ParallelStrategy | ParallelMode = "auto",
    ) -> list[list[Rank]]:
        """Encode many texts without recognising special tokens."""
        return run_batch(
            self.encode_ordinary,
            texts,
            num_workers=num_workers,
            parallel_mode=parallel_mode,
        )

    # decoding
    # ------------------------------------------------------------------

    def decode_bytes(self, tokens: Sequence[Rank]) -> bytes:
        """
        Concatenate the bytes of every token.

        :raises DecodeError: If any token is unknown to both tables.
        """
        resolve = self._table.resolve
        return b"".join(resolve(tok) for tok in tokens)

    def decode(
        self, tokens: Sequence[Rank], mode: DecodeMode | str = DecodeMode.LOSSY
    ) -> str:
        """
        Decode tokens into text.

        Individual tokens may hold partial UTF-8 sequences, so an arbitrary
        token list need not decode to valid text.

        :param tokens: Token sequence to decode.
        :param mode: ``STRICT`` raises on invalid UTF-8, ``LOSSY`` substitutes U+FFFD.
        :raises DecodeError: On an unknown token, or invalid UTF-8 in strict mode.
        """
        mode = DecodeMode.get(mode)
        data = self.decode_bytes(tokens)
        try:
            return data.decode("utf-8", errors=mode.value)
        except UnicodeDecodeError as e:
            raise DecodeError(
                "decoded bytes are not valid utf-8", position=e.start
            ) from e

    def decode_single_token_bytes(self, token: Rank) -> bytes:
        """Return the bytes of one token, special tokens included."""
        return self._table.resolve(token)

    def decode_tokens_bytes(self, tokens: Sequence[Rank]) -> list[bytes]:
        """Return the bytes of each token; useful for visualising tokenization."""
        return [self._table.resolve(tok) for tok in tokens]

    def decode_batch(
        self,
        batch: Sequence[Sequence[Rank]],
        mode: DecodeMode | str = DecodeMode.LOSSY,
        *,
        num_workers: int | None = None,
        parallel_mode: ParallelStrategy | ParallelMode = "auto",
    ) -> list[str]:
        """Decode many token sequences, preserving input order."""
        mode = DecodeMode.get(mode)
        return run_batch(
            lambda tokens: self.decode(tokens, mode),
            batch,
            num_workers=num_workers,
            parallel_mode=parallel_mode,
        )

    # introspection
    # ------------------------------------------------------------------

    @property
    def special_tokens_set(self) -> frozenset[str]:
        return self._table.special_tokens_set

    @property
    def max_token_value(self) -> Rank:
        return self._table.max_token_value

    @property
    def n_vocab(self) -> int:
        """For backwards compatibility; prefer ``max_token_value + 1``."""
        return self._table.n_vocab

    @property
    def eot_token(self) -> Rank | None:
        """Rank of ``<|endoftext|>``, if the encoding has one."""
        return self._table.special_encoder.get(ENDOFTEXT)

    @property
    def mergeable_ranks(self) -> Mapping[bytes, Rank]:
        return self._table.encoder

    @property
    def special_tokens(self) -> Mapping[str, Rank]:
        return self._table.special_encoder

    def token_byte_values(self) -> list[bytes]:
        """Return the bytes of every ordinary token, sorted."""
        return list(self._table.sorted_token_bytes)

    def cache_info(self) -> CacheInfo:
        return self._cache.info()

    # internals
    # ------------------------------------------------------------------

    def _encode_tracking_last_piece(
        self, text: str, policy: SpecialPolicy | None
    ) -> tuple[list[Rank], int]:
        """Encode ``text`` and count the tokens of its trailing ordinary piece."""
        if policy is None:
            policy = ALLOW_NONE

        special = self._table.special_encoder
        tokens: list[Rank] = []
        last_piece_len = 0
        for segment in self._segmenter.segment(text, policy):
            if isinstance(segment, OrdinaryPiece):
                piece_tokens = self._encode_piece(segment.data)
                tokens.extend(piece_tokens)
                last_piece_len = len(piece_tokens)
            else:
                # special literals never go through the merge engine
                tokens.append(special[segment.text])
                last_piece_len = 0
        return tokens, last_piece_len

    def _extend_over_whitespace(self, tokens: list[Rank], last_piece_len: int) -> int:
        """
        Grow the unstable tail backwards over whitespace-only tokens.

        Segmentation patterns let trailing whitespace split off from the piece
        that follows, so a whitespace tail is unstable together with the
        whitespace tokens before it.
        """

        def is_all_space(tok: Rank) -> bool:
            return all(b in b" \n\t" for b in self._table.resolve(tok))

        if is_all_space(tokens[-last_piece_len]):
            while last_piece_len < len(tokens) and is_all_space(
                tokens[-last_piece_len - 1]
            ):
                last_piece_len += 1
        return last_piece_len

    def _tokens_starting_with(self, prefix: bytes) -> Iterator[bytes]:
        """Yield ordinary tokens that start with ``prefix``, in byte order."""
        sorted_tokens = self._table.sorted_token_bytes
        idx = bisect.bisect_left(sorted_tokens, prefix)
        while idx < len(sorted_tokens) and sorted_tokens[idx].startswith(prefix):
            yield sorted_tokens[idx]
            idx += 1

    def _encode_piece(self, piece: bytes) -> tuple[Rank, ...] | list[Rank]:
        # whole-piece tokens skip both the cache and the merge engine
        rank = self._table.lookup(piece)
        if rank is not None:
            return [rank]
        return self._cache.get_or_compute(piece)

    def _merge_piece(self, piece: bytes) -> list[Rank]:
        return byte_pair_encode(piece, self._table.encoder)


def _decode_last_char(data: bytes) -> tuple[str | None, int]:
    """
    Decode the last UTF-8 character of ``data``.

    Returns the character (``None`` if the tail is not valid UTF-8) and the
    number of bytes it spans; an invalid tail counts as one byte.
    """
    for size in range(1, min(4, len(data)) + 1):
        try:
            return data[-size:].decode("utf-8"), size
        except UnicodeDecodeError:
            continue
    return None, 1


__all__ = ["DecodeMode", "Encoding", "ENDOFTEXT"]
