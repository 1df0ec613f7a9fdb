"""Named encodings, built lazily once per process."""

import logging
import threading
from collections.abc import Callable
from typing import Final

from typing_extensions import TypeAliasType

from . import _config
from ._decorators import measure_time
from ._models.encoding import ENDOFTEXT, Encoding
from .errors import EncodingNameError, EncodingRegistrationError, ModelNameError
from .load import data_gym_to_mergeable_bpe_ranks, load_tiktoken_bpe
from .pattern import TokenPattern
from .types import EncoderTable

log = logging.getLogger(__name__)

EncodingConstructor = TypeAliasType("EncodingConstructor", Callable[[], Encoding])

FIM_PREFIX: Final[str] = "<|fim_prefix|>"
FIM_MIDDLE: Final[str] = "<|fim_middle|>"
FIM_SUFFIX: Final[str] = "<|fim_suffix|>"
ENDOFPROMPT: Final[str] = "<|endofprompt|>"


# Vocabulary sources
# ===================================================================================


def _ranks_from_tiktoken(name: str) -> EncoderTable:
    """Fetch mergeable ranks through tiktoken, which downloads and caches them."""
    import tiktoken

    log.info(f"fetching {name!r} ranks through tiktoken")
    return dict(tiktoken.get_encoding(name)._mergeable_ranks)


def _load_ranks(filename: str, tiktoken_name: str) -> EncoderTable:
    """Load ranks from ``RANKTOK_VOCAB_DIR`` if the file is there, else via tiktoken."""
    directory = _config.vocab_dir()
    if directory is not None:
        path = directory / filename
        if path.exists():
            return load_tiktoken_bpe(path)
        log.debug(f"{path} not found, falling back to tiktoken")
    return _ranks_from_tiktoken(tiktoken_name)


# Built-in encodings
# ===================================================================================


def gpt2() -> Encoding:
    directory = _config.vocab_dir()
    if directory is not None and (directory / "vocab.bpe").exists():
        encoder_json = directory / "encoder.json"
        ranks = data_gym_to_mergeable_bpe_ranks(
            directory / "vocab.bpe",
            encoder_json if encoder_json.exists() else None,
        )
    else:
        ranks = _ranks_from_tiktoken("gpt2")
    return Encoding(
        "gpt2",
        pat_str=TokenPattern.GPT2.value,
        mergeable_ranks=ranks,
        special_tokens={ENDOFTEXT: 50256},
        explicit_n_vocab=50257,
    )


def r50k_base() -> Encoding:
    return Encoding(
        "r50k_base",
        pat_str=TokenPattern.GPT2.value,
        mergeable_ranks=_load_ranks("r50k_base.tiktoken", "r50k_base"),
        special_tokens={ENDOFTEXT: 50256},
        explicit_n_vocab=50257,
    )


def p50k_base() -> Encoding:
    return Encoding(
        "p50k_base",
        pat_str=TokenPattern.GPT2.value,
        mergeable_ranks=_load_ranks("p50k_base.tiktoken", "p50k_base"),
        special_tokens={ENDOFTEXT: 50256},
        explicit_n_vocab=50281,
    )


def p50k_edit() -> Encoding:
    # same ranks as p50k_base, plus fill-in-the-middle tokens
    return Encoding(
        "p50k_edit",
        pat_str=TokenPattern.GPT2.value,
        mergeable_ranks=_load_ranks("p50k_base.tiktoken", "p50k_base"),
        special_tokens={
            ENDOFTEXT: 50256,
            FIM_PREFIX: 50281,
            FIM_MIDDLE: 50282,
            FIM_SUFFIX: 50283,
        },
    )


def cl100k_base() -> Encoding:
    return Encoding(
        "cl100k_base",
        pat_str=TokenPattern.CL100K.value,
        mergeable_ranks=_load_ranks("cl100k_base.tiktoken", "cl100k_base"),
        special_tokens={
            ENDOFTEXT: 100257,
            FIM_PREFIX: 100258,
            FIM_MIDDLE: 100259,
            FIM_SUFFIX: 100260,
            ENDOFPROMPT: 100276,
        },
    )


# Registry
# ===================================================================================

_CONSTRUCTORS: dict[str, EncodingConstructor] = {
    "gpt2": gpt2,
    "r50k_base": r50k_base,
    "p50k_base": p50k_base,
    "p50k_edit": p50k_edit,
    "cl100k_base": cl100k_base,
}
_ENCODINGS: dict[str, Encoding] = {}
_lock = threading.Lock()


def register_encoding(name: str, constructor: EncodingConstructor) -> None:
    """
    Register a constructor for a named encoding.

    The constructor runs on the first ``get_encoding(name)`` call only.

    :raises EncodingRegistrationError: If ``name`` is already registered.
    """
    with _lock:
        if name in _CONSTRUCTORS:
            raise EncodingRegistrationError(name)
        _CONSTRUCTORS[name] = constructor


def list_encoding_names() -> list[str]:
    """Return registered encoding names."""
    return sorted(_CONSTRUCTORS)


@measure_time
def _build(name: str, constructor: EncodingConstructor) -> Encoding:
    log.info(f"building encoding {name!r}")
    return constructor()


def get_encoding(name: str) -> Encoding:
    """
    Return the named encoding, building it on first use.

    Each name is built at most once per process; later calls return the same
    instance, which is never mutated afterwards.

    :raises EncodingNameError: If ``name`` is not registered.
    :raises ConfigError: If the vocabulary violates the table invariants.
    :raises VocabularyLoadError: If the vocabulary cannot be read.

    .. code-block:: python

        enc = get_encoding("cl100k_base")
        tokens = enc.encode_ordinary("hello world")
    """
    encoding = _ENCODINGS.get(name)
    if encoding is not None:
        return encoding

    with _lock:
        # another thread may have finished building while we waited
        encoding = _ENCODINGS.get(name)
        if encoding is not None:
            return encoding

        constructor = _CONSTRUCTORS.get(name)
        if constructor is None:
            raise EncodingNameError(name, available=sorted(_CONSTRUCTORS))

        encoding = _build(name, constructor)
        _ENCODINGS[name] = encoding
        return encoding


# Model names
# ===================================================================================

MODEL_PREFIX_TO_ENCODING: Final[dict[str, str]] = {
    # chat
    "gpt-4-": "cl100k_base",  # e.g., gpt-4-0314, etc., plus gpt-4-32k
    "gpt-3.5-turbo-": "cl100k_base",  # e.g, gpt-3.5-turbo-0301, -0401, etc.
}

MODEL_TO_ENCODING: Final[dict[str, str]] = {
    # chat
    "gpt-4": "cl100k_base",
    "gpt-3.5-turbo": "cl100k_base",
    # text
    "text-davinci-003": "p50k_base",
    "text-davinci-002": "p50k_base",
    "text-davinci-001": "r50k_base",
    "text-curie-001": "r50k_base",
    "text-babbage-001": "r50k_base",
    "text-ada-001": "r50k_base",
    "davinci": "r50k_base",
    "curie": "r50k_base",
    "babbage": "r50k_base",
    "ada": "r50k_base",
    # code
    "code-davinci-002": "p50k_base",
    "code-davinci-001": "p50k_base",
    "code-cushman-002": "p50k_base",
    "code-cushman-001": "p50k_base",
    "davinci-codex": "p50k_base",
    "cushman-codex": "p50k_base",
    # edit
    "text-davinci-edit-001": "p50k_edit",
    "code-davinci-edit-001": "p50k_edit",
    # embeddings
    "text-embedding-ada-002": "cl100k_base",
    # old embeddings
    "text-similarity-davinci-001": "r50k_base",
    "text-similarity-curie-001": "r50k_base",
    "text-similarity-babbage-001": "r50k_base",
    "text-similarity-ada-001": "r50k_base",
    "text-search-davinci-doc-001": "r50k_base",
    "text-search-curie-doc-001": "r50k_base",
    "text-search-babbage-doc-001": "r50k_base",
    "text-search-ada-doc-001": "r50k_base",
    "code-search-babbage-code-001": "r50k_base",
    "code-search-ada-code-001": "r50k_base",
    # open source
    "gpt2": "gpt2",
}


def encoding_name_for_model(model_name: str) -> str:
    """
    Return the name of the encoding a model uses.

    Exact names are checked first, then known prefixes, so new dated model
    versions map without a library update (this also matches non-existent
    names such as ``gpt-4-FAKE``).

    :raises ModelNameError: If the model cannot be mapped.
    """
    if model_name in MODEL_TO_ENCODING:
        return MODEL_TO_ENCODING[model_name]

    for prefix, encoding_name in MODEL_PREFIX_TO_ENCODING.items():
        if model_name.startswith(prefix):
            return encoding_name

    raise ModelNameError(model_name)


def encoding_for_model(model_name: str) -> Encoding:
    """Return the encoding a model uses, building it on first use."""
    return get_encoding(encoding_name_for_model(model_name))


__all__ = [
    "EncodingConstructor",
    "register_encoding",
    "list_encoding_names",
    "get_encoding",
    "encoding_name_for_model",
    "encoding_for_model",
    "MODEL_TO_ENCODING",
    "MODEL_PREFIX_TO_ENCODING",
]
