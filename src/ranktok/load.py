"""
Reading and writing vocabulary files.

Only local files are handled here: fetching vocabularies and verifying their
integrity is left to the caller (or to ``tiktoken``, see ``ranktok.registry``).
"""

import base64
import binascii
import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from ._decorators import measure_time
from ._sanitise import render_bytes
from .errors import VocabularyLoadError
from .types import EncoderTable, Rank

if TYPE_CHECKING:
    from ._models.encoding import Encoding

log = logging.getLogger(__name__)

TIKTOKEN_SUFFIX = ".tiktoken"
VOCAB_SUFFIX = ".vocab"

# data-gym literals that are not part of the mergeable ranks
_DATA_GYM_SPECIALS = ("<|endoftext|>", "<|startoftext|>")


@measure_time
def load_tiktoken_bpe(path: str | Path) -> EncoderTable:
    """
    Load mergeable ranks from a ``.tiktoken`` file.

    Each non-blank line holds a base64-encoded token and its rank separated by
    a single space.

    :param path: File to read.
    :return: Byte sequence -> rank.
    :raises VocabularyLoadError: If the file is missing or a line is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise VocabularyLoadError("vocabulary file does not exist", path=str(path))

    log.info(f"loading mergeable ranks from {path}")

    ranks: EncoderTable = {}
    with path.open("rb") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                token, rank = line.split()
                ranks[base64.b64decode(token, validate=True)] = int(rank)
            except (ValueError, binascii.Error) as e:
                raise VocabularyLoadError(
                    "expected '<base64 token> <rank>'", path=str(path), line=lineno
                ) from e

    log.debug(f"loaded {len(ranks)} mergeable ranks")
    return ranks


def dump_tiktoken_bpe(ranks: Mapping[bytes, Rank], path: str | Path) -> None:
    """Write mergeable ranks as a ``.tiktoken`` file, in rank order."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("wb") as f:
        for token, rank in sorted(ranks.items(), key=lambda x: x[1]):
            f.write(base64.b64encode(token) + b" " + str(rank).encode() + b"\n")

    log.debug(f"wrote {len(ranks)} mergeable ranks to {path}")


def _data_gym_alphabet() -> tuple[list[int], dict[str, int]]:
    """
    Return the byte order of the GPT-2 base vocabulary and the character each
    byte is spelled with in data-gym files.

    Printable ISO-8859-1 bytes spell themselves and come first; the remaining
    bytes are spelled with code points from 256 upward, in byte order.
    """
    rank_to_intbyte = [
        *range(0x21, 0x7F),
        *range(0xA1, 0xAD),
        *range(0xAE, 0x100),
    ]
    printable = set(rank_to_intbyte)
    char_to_byte = {chr(b): b for b in rank_to_intbyte}

    n = 0
    for b in range(256):
        if b not in printable:
            rank_to_intbyte.append(b)
            char_to_byte[chr(256 + n)] = b
            n += 1

    return rank_to_intbyte, char_to_byte


@measure_time
def data_gym_to_mergeable_bpe_ranks(
    vocab_bpe_path: str | Path,
    encoder_json_path: str | Path | None = None,
) -> EncoderTable:
    """
    Build mergeable ranks from GPT-2 style ``vocab.bpe`` and ``encoder.json`` files.

    Single bytes get ranks 0-255 in data-gym alphabet order and each merge line
    gets the next rank, in file order. When ``encoder_json_path`` is given the
    result must agree with it, since ranks are assumed to follow merge priority.

    :raises VocabularyLoadError: On missing files, malformed lines, or a
        mismatch with ``encoder.json``.
    """
    rank_to_intbyte, char_to_byte = _data_gym_alphabet()

    def decode_data_gym(value: str) -> bytes:
        try:
            return bytes(char_to_byte[c] for c in value)
        except KeyError as e:
            raise VocabularyLoadError(
                f"character outside the data-gym alphabet: {e.args[0]!r}"
            ) from None

    vocab_bpe_path = Path(vocab_bpe_path)
    if not vocab_bpe_path.exists():
        raise VocabularyLoadError("vocabulary file does not exist", path=str(vocab_bpe_path))

    log.info(f"loading data-gym merges from {vocab_bpe_path}")

    ranks: EncoderTable = {bytes([b]): i for i, b in enumerate(rank_to_intbyte)}
    n = len(ranks)

    with vocab_bpe_path.open("r", encoding="utf-8") as f:
        # first line is the "#version" header
        for lineno, line in enumerate(f, start=1):
            if lineno == 1 and line.startswith("#"):
                continue
            parts = line.split()
            if not parts:
                continue
            if len(parts) != 2:
                raise VocabularyLoadError(
                    "expected '<first> <second>' merge",
                    path=str(vocab_bpe_path),
                    line=lineno,
                )
            first, second = parts
            ranks[decode_data_gym(first) + decode_data_gym(second)] = n
            n += 1

    if encoder_json_path is not None:
        encoder_json_path = Path(encoder_json_path)
        if not encoder_json_path.exists():
            raise VocabularyLoadError(
                "encoder file does not exist", path=str(encoder_json_path)
            )
        with encoder_json_path.open("r", encoding="utf-8") as f:
            encoder_json = json.load(f)
        for seq in _DATA_GYM_SPECIALS:
            encoder_json.pop(seq, None)
        loaded = {decode_data_gym(key): rank for key, rank in encoder_json.items()}
        if loaded != ranks:
            raise VocabularyLoadError(
                "encoder.json does not match the merges in vocab.bpe",
                path=str(encoder_json_path),
            )

    log.debug(f"built {len(ranks)} mergeable ranks from data-gym files")
    return ranks


def save_readable_vocab(encoding: "Encoding", path: str | Path) -> Path:
    """
    Write a human-readable listing of every token of ``encoding``.

    Special tokens come first as ``ST [rank] literal``; ordinary tokens follow
    as ``[rank] text`` in rank order, with partial UTF-8 shown as U+FFFD and
    control characters escaped.

    :return: The path written, with a ``.vocab`` suffix.
    """
    vocab_path = Path(path).with_suffix(VOCAB_SUFFIX)
    vocab_path.parent.mkdir(parents=True, exist_ok=True)

    log.debug(f"saving vocab to {vocab_path}")

    with vocab_path.open("w", encoding="utf-8", newline="\n") as f:
        for seq, tok in sorted(encoding.special_tokens.items(), key=lambda x: x[1]):
            f.write(f"ST [{tok}] {seq}\n")
        for token, tok in sorted(encoding.mergeable_ranks.items(), key=lambda x: x[1]):
            f.write(f"[{tok}] {render_bytes(token)}\n")

    return vocab_path


__all__ = [
    "load_tiktoken_bpe",
    "dump_tiktoken_bpe",
    "data_gym_to_mergeable_bpe_ranks",
    "save_readable_vocab",
]
