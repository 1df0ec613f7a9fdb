"""Special token policies for encoding."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Final, Literal, overload

from .errors import PolicyError

log = logging.getLogger(__name__)


class PolicyKind(str, Enum):
    """Which special-token literals an encode call may turn into special ranks."""

    ALL = "all"
    SET = "set"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class SpecialPolicy:
    """
    Decides which known special literals are allowed in text being encoded.

    Every known literal is either allowed (emitted as its special rank) or
    disallowed (its presence aborts the encode). Untrusted text should be
    encoded with ``ALLOW_NONE`` so that it cannot smuggle control tokens into a
    token stream; use ``Encoding.encode_ordinary`` to treat such literals as
    plain text instead.
    """

    kind: PolicyKind
    allowed: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def allow_all(cls) -> "SpecialPolicy":
        """Permit every special literal known to the encoding."""
        return cls(PolicyKind.ALL)

    @classmethod
    def allow_set(cls, literals: Iterable[str]) -> "SpecialPolicy":
        """Permit only ``literals``; any other known literal is a violation."""
        return cls(PolicyKind.SET, frozenset(literals))

    @classmethod
    def allow_none(cls) -> "SpecialPolicy":
        """Treat every known special literal as a violation."""
        return cls(PolicyKind.NONE)

    def resolve(
        self, known: Iterable[str]
    ) -> tuple[frozenset[str], frozenset[str]]:
        """
        Split the known special literals into allowed and disallowed sets.

        :param known: Special literals registered with the encoding.
        :return: ``(allowed, disallowed)``, disjoint and together covering ``known``.
        """
        known = frozenset(known)
        match self.kind:
            case PolicyKind.ALL:
                if not known:
                    log.warning("no special tokens registered")
                return known, frozenset()
            case PolicyKind.SET:
                unknown = self.allowed - known
                if unknown:
                    log.warning(
                        f"ignoring allowed literals that are not special tokens: {sorted(unknown)}"
                    )
                return self.allowed & known, known - self.allowed
            case PolicyKind.NONE:
                return frozenset(), known


ALLOW_ALL: Final[SpecialPolicy] = SpecialPolicy.allow_all()
ALLOW_NONE: Final[SpecialPolicy] = SpecialPolicy.allow_none()


PolicyName = Literal["all", "set", "none"]


def list_policies() -> list[str]:
    """Return available special token policy names."""
    return [kind.value for kind in PolicyKind]


@overload
def get_policy(name: Literal["all", "none"]) -> SpecialPolicy:
    """Return a built-in policy that does not need extra arguments."""
    ...


@overload
def get_policy(name: Literal["set"], allowed_subset: Iterable[str]) -> SpecialPolicy:
    """Return a policy limited to ``allowed_subset``."""
    ...


def get_policy(
    name: PolicyName = "none", allowed_subset: Iterable[str] | None = None
) -> SpecialPolicy:
    """
    Create a special token policy by name.

    :param name: Policy identifier: "all", "set", or "none".
    :param allowed_subset: Required for "set"; literals allowed during encoding.
    :raises PolicyError: If name is unknown or allowed_subset is missing for "set".

    .. code-block:: python

        policy = get_policy("none")
        policy = get_policy("set", allowed_subset={"<|endoftext|>"})
    """
    try:
        kind = PolicyKind(name)
    except ValueError:
        raise PolicyError(
            "unknown policy name", invalid_name=name, available=list_policies()
        ) from None

    match kind:
        case PolicyKind.ALL:
            return ALLOW_ALL
        case PolicyKind.NONE:
            return ALLOW_NONE
        case PolicyKind.SET:
            if allowed_subset is None:
                raise PolicyError("allowed_subset is required for the set policy")
            return SpecialPolicy.allow_set(allowed_subset)


__all__ = [
    "PolicyKind",
    "PolicyName",
    "SpecialPolicy",
    "ALLOW_ALL",
    "ALLOW_NONE",
    "list_policies",
    "get_policy",
]
