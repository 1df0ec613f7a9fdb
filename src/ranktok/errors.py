"""Custom exception hierarchy for ranktok tokenization errors."""

import regex as re

from .types import Rank


class RankTokError(Exception):
    """Base exception for all ranktok errors."""


class ConfigError(RankTokError):
    """Raised when rank tables violate their construction invariants."""

    def __init__(
        self,
        message: str,
        *,
        missing_bytes: list[int] | None = None,
        overlapping: set[Rank] | None = None,
        vocab_mismatch: tuple[int, int] | None = None,
    ) -> None:
        extra = " "
        # single-byte coverage: show the first few gaps only
        if missing_bytes:
            shown = ", ".join(str(b) for b in missing_bytes[:8])
            if len(missing_bytes) > 8:
                shown += ", ..."
            extra += f"(missing bytes: {shown}) "
        if overlapping:
            extra += f"(overlapping ranks: {sorted(overlapping)}) "
        if vocab_mismatch is not None:
            extra += f"(expected: {vocab_mismatch[1]}) (got {vocab_mismatch[0]}) "
        super().__init__(message + extra)
        self.missing_bytes = missing_bytes
        self.overlapping = overlapping
        self.vocab_mismatch = vocab_mismatch


class SpecialTokenViolation(RankTokError):
    """Raised when text contains special tokens the encode policy does not allow."""

    def __init__(self, message: str, *, found_tokens: set[str] | None = None) -> None:
        """Initialize with optional found_tokens that get appended to the message."""
        if found_tokens:
            message = f"{message} (found: {', '.join(sorted(found_tokens))})"
        super().__init__(message)
        self.found_tokens = found_tokens or set()


class DecodeError(RankTokError):
    """Raised when token ids cannot be turned back into bytes or text."""

    def __init__(
        self,
        message: str,
        *,
        invalid_tok: Rank | None = None,
        position: int | None = None,
    ) -> None:
        extra = " "
        # unknown rank
        if invalid_tok is not None:
            extra += f"(invalid token: {invalid_tok}) "
        # strict mode: offset of the first bad utf-8 byte
        if position is not None:
            extra += f"(byte position: {position}) "
        super().__init__(message + extra)
        self.invalid_tok = invalid_tok
        self.position = position


class TokenEncodeError(RankTokError):
    """Raised when a byte sequence does not map to exactly one token."""

    def __init__(self, message: str, *, piece: bytes | None = None) -> None:
        if piece is not None:
            message = f"{message} (piece: {piece!r})"
        super().__init__(message)
        self.piece = piece


class PatternError(RankTokError):
    """Raised when compiling and/or validating regex patterns."""

    def __init__(
        self,
        message: str,
        *,
        pattern: str | None = None,
        regex_err: re.error | None = None,
    ) -> None:
        """
        Initialize PatternError with pattern details.

        Args:
            message: Error message.
            pattern: The regex pattern that failed.
            regex_err: The underlying regex error from the regex library.
        """
        extra = " "
        if pattern:
            extra += f"(pattern: {pattern!r}) "
        if regex_err:
            extra += f"(reason: {regex_err}) "
        super().__init__(message + extra)
        self.pattern = pattern
        self.regex_err = regex_err


class PolicyError(RankTokError):
    """Raised when a named policy or mode cannot be resolved."""

    def __init__(
        self,
        message: str,
        *,
        invalid_name: str | None = None,
        available: list[str] | None = None,
    ) -> None:
        extra = " "
        if invalid_name:
            extra += f"(available: {available}) (got {invalid_name}) "
        super().__init__(message + extra)
        self.invalid_name = invalid_name
        self.available = available


class EncodingNameError(RankTokError):
    """Raised when an encoding name is not registered."""

    def __init__(self, name: str, *, available: list[str] | None = None) -> None:
        message = f"unknown encoding {name!r}"
        if available:
            message += f" (available: {', '.join(available)})"
        super().__init__(message)
        self.name = name
        self.available = available


class EncodingRegistrationError(RankTokError):
    """Raised when a name is registered twice."""

    def __init__(self, name: str) -> None:
        super().__init__(f"encoding {name!r} is already registered")
        self.name = name


class ModelNameError(RankTokError):
    """Raised when a model name cannot be mapped to an encoding."""

    def __init__(self, model_name: str) -> None:
        super().__init__(
            f"could not automatically map {model_name!r} to an encoding, "
            "use get_encoding() to pick the encoding explicitly"
        )
        self.model_name = model_name


class VocabularyLoadError(RankTokError):
    """Raised when reading vocabulary data fails."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        line: int | None = None,
    ) -> None:
        extra = " "
        if path:
            extra += f"(path: {path}) "
        if line is not None:
            extra += f"(line: {line}) "
        super().__init__(message + extra)
        self.path = path
        self.line = line
