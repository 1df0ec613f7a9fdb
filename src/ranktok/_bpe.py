"""
Core Byte Pair Encoding (BPE) operations.

Merging is driven by the rank table alone: the rank of a byte sequence is both
its token id and its merge priority, so lower ranks merge first.
"""

import heapq
from collections.abc import Mapping

from typing_extensions import deprecated

from .types import Rank


def byte_pair_merge(piece: bytes, ranks: Mapping[bytes, Rank]) -> list[int]:
    """
    Greedily merge adjacent byte spans of ``piece`` and return the start offset
    of every span that survives.

    The piece starts out as one span per byte. At each step the adjacent pair
    whose concatenation has the lowest rank in ``ranks`` is merged, with the
    leftmost pair winning ties. Merging stops once no adjacent concatenation
    is present in ``ranks``.

    Instead of rescanning every pair after each merge, candidate pairs live in
    a min-heap keyed by ``(rank, left start)``. A merge only creates two new
    candidates (with the left and right neighbours of the merged span), and
    entries made obsolete by earlier merges are discarded lazily when popped.

    :param piece: Byte span produced by segmentation.
    :param ranks: Encoder table mapping byte sequences to ranks.
    :return: Ascending start offsets of the final spans.
    """
    n = len(piece)
    if n < 2:
        return list(range(n))

    # spans form a doubly linked list keyed by start offset; the span starting
    # at i covers piece[i:nxt[i]] and n marks the end of the piece
    nxt = list(range(1, n + 1))
    prv = list(range(-1, n - 1))
    alive = [True] * n

    # heap entries: (rank, left start, right start, right end)
    heap: list[tuple[Rank, int, int, int]] = []
    for i in range(n - 1):
        rank = ranks.get(piece[i : i + 2])
        if rank is not None:
            heap.append((rank, i, i + 1, i + 2))
    heapq.heapify(heap)

    while heap:
        rank, left, right, end = heapq.heappop(heap)
        # stale: either side changed extent since this pair was pushed
        if not alive[left] or nxt[left] != right or nxt[right] != end:
            continue

        # absorb the right span into the left one
        alive[right] = False
        nxt[left] = end
        if end < n:
            prv[end] = left

        before = prv[left]
        if before >= 0:
            merged = ranks.get(piece[before:end])
            if merged is not None:
                heapq.heappush(heap, (merged, before, left, end))
        if end < n:
            after = nxt[end]
            merged = ranks.get(piece[left:after])
            if merged is not None:
                heapq.heappush(heap, (merged, left, end, after))

    starts = []
    i = 0
    while i < n:
        starts.append(i)
        i = nxt[i]
    return starts


def byte_pair_split(piece: bytes, ranks: Mapping[bytes, Rank]) -> list[bytes]:
    """Return the byte content of the spans ``byte_pair_merge`` leaves behind."""
    starts = byte_pair_merge(piece, ranks)
    ends = starts[1:] + [len(piece)]
    return [piece[start:end] for start, end in zip(starts, ends)]


def byte_pair_encode(piece: bytes, ranks: Mapping[bytes, Rank]) -> list[Rank]:
    """
    Encode one piece into ranks.

    Never fails when ``ranks`` covers all 256 single bytes, since every span
    left by the merge is either a single byte or a merged table entry.

    :param piece: Non-empty byte span without special tokens.
    :param ranks: Encoder table.
    :return: Rank of each final span, left to right.
    """
    if len(piece) == 1:
        return [ranks[piece]]
    return [ranks[part] for part in byte_pair_split(piece, ranks)]


@deprecated(
    "Reference implementation for documentation only. Use `byte_pair_split()` instead."
)
def slow_byte_pair_merge(piece: bytes, ranks: Mapping[bytes, Rank]) -> list[bytes]:
    """
    Merge ``piece`` by rescanning every adjacent pair after each merge.

    Same result as ``byte_pair_split`` at O(n²) per piece. Kept as the
    readable statement of the merge rule.
    """
    parts = [bytes([b]) for b in piece]

    while len(parts) > 1:
        best: tuple[int, Rank] | None = None
        for i, (left, right) in enumerate(zip(parts[:-1], parts[1:])):
            rank = ranks.get(left + right)
            # strict comparison keeps the leftmost pair on ties
            if rank is not None and (best is None or rank < best[1]):
                best = (i, rank)
        if best is None:
            break
        idx = best[0]
        parts = parts[:idx] + [parts[idx] + parts[idx + 1]] + parts[idx + 2 :]

    return parts
