"""ranktok: byte-pair encoding over fixed, pretrained rank tables."""

from ._bpe import byte_pair_encode, byte_pair_merge, byte_pair_split
from ._models.encoding import DecodeMode, Encoding
from ._models.table import RankTable
from .cache import CacheInfo, SplitCache
from .errors import (
    ConfigError,
    DecodeError,
    EncodingNameError,
    EncodingRegistrationError,
    ModelNameError,
    PatternError,
    PolicyError,
    RankTokError,
    SpecialTokenViolation,
    TokenEncodeError,
    VocabularyLoadError,
)
from .load import (
    data_gym_to_mergeable_bpe_ranks,
    dump_tiktoken_bpe,
    load_tiktoken_bpe,
    save_readable_vocab,
)
from .parallel import ParallelMode, list_parallel_modes
from .pattern import TokenPattern, get_pattern, list_patterns
from .policy import (
    ALLOW_ALL,
    ALLOW_NONE,
    PolicyKind,
    SpecialPolicy,
    get_policy,
    list_policies,
)
from .registry import (
    encoding_for_model,
    encoding_name_for_model,
    get_encoding,
    list_encoding_names,
    register_encoding,
)

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ranktok")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "Encoding",
    "RankTable",
    "DecodeMode",
    "SpecialPolicy",
    "PolicyKind",
    "ALLOW_ALL",
    "ALLOW_NONE",
    "SplitCache",
    "CacheInfo",
    "TokenPattern",
    "ParallelMode",
    "byte_pair_merge",
    "byte_pair_split",
    "byte_pair_encode",
    "get_encoding",
    "encoding_for_model",
    "encoding_name_for_model",
    "register_encoding",
    "get_policy",
    "get_pattern",
    "load_tiktoken_bpe",
    "dump_tiktoken_bpe",
    "data_gym_to_mergeable_bpe_ranks",
    "save_readable_vocab",
    "list_encoding_names",
    "list_patterns",
    "list_parallel_modes",
    "list_policies",
    "RankTokError",
    "ConfigError",
    "SpecialTokenViolation",
    "DecodeError",
    "TokenEncodeError",
    "PatternError",
    "PolicyError",
    "EncodingNameError",
    "EncodingRegistrationError",
    "ModelNameError",
    "VocabularyLoadError",
]
