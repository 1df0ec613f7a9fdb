"""
Segmentation of input text into special literals and mergeable pieces.
"""

import functools
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from typing_extensions import TypeAliasType

import regex as re

from .errors import SpecialTokenViolation
from .policy import SpecialPolicy


@dataclass(frozen=True, slots=True)
class OrdinaryPiece:
    """UTF-8 bytes of one pattern match, merged independently of its neighbours."""

    data: bytes


@dataclass(frozen=True, slots=True)
class SpecialLiteral:
    """A permitted special-token literal, emitted as its special rank."""

    text: str


Segment = TypeAliasType("Segment", OrdinaryPiece | SpecialLiteral)


@functools.lru_cache(maxsize=128)
def special_token_regex(literals: frozenset[str]) -> re.Pattern[str]:
    """
    Compile a pattern matching any of ``literals``.

    Longer literals come first in the alternation so that a literal which is a
    prefix of another one never shadows it.
    """
    ordered = sorted(literals, key=lambda seq: (-len(seq), seq))
    # escape regex metachars like "|" in special tokens
    return re.compile("|".join(re.escape(seq) for seq in ordered))


class Segmenter:
    """Splits text with a segmentation pattern and a set of special literals."""

    def __init__(self, pattern: re.Pattern[str], special_literals: Iterable[str]) -> None:
        self.pattern = pattern
        self.special_literals = frozenset(special_literals)

    def split_ordinary(self, text: str) -> Iterator[bytes]:
        """
        Yield the pattern pieces of ``text`` as UTF-8 bytes.

        Unencodable code points (lone surrogates) are replaced; empty matches
        are skipped since the merge engine needs at least one byte.
        """
        for m in self.pattern.finditer(text):
            chunk = m.group(0)
            if chunk:
                yield chunk.encode("utf-8", errors="replace")

    def find_special(self, text: str, literals: frozenset[str]) -> set[str]:
        """Return every literal of ``literals`` that occurs in ``text``."""
        if not literals:
            return set()
        return {m.group(0) for m in special_token_regex(literals).finditer(text)}

    def segment(self, text: str, policy: SpecialPolicy) -> Iterator[Segment]:
        """
        Partition ``text`` into ordinary pieces and permitted special literals.

        The policy check runs eagerly, so a violation is raised before any
        segment is produced.

        :param text: Text to segment.
        :param policy: Decides which known special literals are permitted.
        :returns: Segments in text order; concatenated they reproduce ``text``
            (up to what the segmentation pattern matches).
        :raises SpecialTokenViolation: If ``text`` contains a disallowed literal.
        """
        allowed, disallowed = policy.resolve(self.special_literals)

        found = self.find_special(text, disallowed)
        if found:
            raise SpecialTokenViolation(
                "special tokens found in text but not allowed", found_tokens=found
            )

        return self._partition(text, allowed)

    def _partition(self, text: str, allowed: frozenset[str]) -> Iterator[Segment]:
        """Cut ``text`` at allowed literals and split the spans in between."""
        start = 0
        if allowed:
            for m in special_token_regex(allowed).finditer(text):
                for piece in self.split_ordinary(text[start : m.start()]):
                    yield OrdinaryPiece(piece)
                yield SpecialLiteral(m.group(0))
                start = m.end()

        for piece in self.split_ordinary(text[start:]):
            yield OrdinaryPiece(piece)


__all__ = [
    "OrdinaryPiece",
    "SpecialLiteral",
    "Segment",
    "Segmenter",
    "special_token_regex",
]
