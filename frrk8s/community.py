"""BGP community values: parsing, ordering and string form."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

LARGE_COMMUNITY_MARKER = "large"

_UINT = re.compile(r"[0-9]+")


class CommunityError(ValueError):
    """Base class for community parsing errors."""


class InvalidCommunityValueError(CommunityError):
    """A community has the right shape but an invalid section."""


class InvalidCommunityFormatError(CommunityError):
    """A community does not have any of the supported shapes."""


class BGPCommunity(ABC):
    """A BGP community that can be compared with any other community."""

    @abstractmethod
    def _sort_key(self) -> tuple[int, int, int]:
        """The community seen as a large community."""

    def less_than(self, other: BGPCommunity) -> bool:
        """Order communities, treating legacy ones as ``<value>:0:0`` large ones."""
        return self._sort_key() < other._sort_key()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, BGPCommunity):
            return NotImplemented
        return self.less_than(other)


@dataclass(frozen=True)
class BGPCommunityLegacy(BGPCommunity):
    """A legacy community, ``<AS number>:<community value>``."""

    upper: int
    lower: int

    def to_uint32(self) -> int:
        """The 32-bit integer form of the community."""
        return (self.upper << 16) + self.lower

    def _sort_key(self) -> tuple[int, int, int]:
        return (self.to_uint32(), 0, 0)

    def __str__(self) -> str:
        return f"{self.upper}:{self.lower}"


@dataclass(frozen=True)
class BGPCommunityLarge(BGPCommunity):
    """A large community, printed as ``<global admin>:<local 1>:<local 2>``."""

    global_administrator: int
    local_data_part1: int
    local_data_part2: int

    def _sort_key(self) -> tuple[int, int, int]:
        return (self.global_administrator, self.local_data_part1, self.local_data_part2)

    def __str__(self) -> str:
        return f"{self.global_administrator}:{self.local_data_part1}:{self.local_data_part2}"


def _parse_uint(section: str, bits: int, text: str) -> int:
    if not _UINT.fullmatch(section):
        reason = "invalid syntax"
    else:
        value = int(section)
        if value < 1 << bits:
            return value
        reason = "value out of range"
    raise InvalidCommunityValueError(
        f'invalid community value: invalid section "{section}" of community "{text}", err: "{reason}"'
    )


def parse_community(text: str) -> BGPCommunity:
    """Parse ``<asn>:<value>`` or ``large:<uint32>:<uint32>:<uint32>``."""
    fields = text.split(":")
    if len(fields) == 2:
        upper, lower = (_parse_uint(f, 16, text) for f in fields)
        return BGPCommunityLegacy(upper, lower)
    if len(fields) == 4:
        marker, *values = fields
        if marker != LARGE_COMMUNITY_MARKER:
            raise InvalidCommunityValueError(
                "invalid community value: invalid marker for large community, expected community "
                f"to be of format {LARGE_COMMUNITY_MARKER}:<uint32>:<uint32>:<uint32> "
                f'but got "{text}" instead'
            )
        first, second, third = (_parse_uint(v, 32, text) for v in values)
        return BGPCommunityLarge(first, second, third)
    raise InvalidCommunityFormatError(f"invalid community format: {text}")


def is_legacy(community: BGPCommunity) -> bool:
    """Whether the community is a legacy one."""
    return isinstance(community, BGPCommunityLegacy)


def is_large(community: BGPCommunity) -> bool:
    """Whether the community is a large one."""
    return isinstance(community, BGPCommunityLarge)