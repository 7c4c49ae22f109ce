"""Typed limit values attached to each (tier, feature) cell of the plan catalog.

A limit is one of four variants:

- ``Unbounded`` -- no ceiling at all.
- ``Count(n)`` -- numeric quota; ``0`` means the feature is not available.
- ``Level(name)`` -- named capability level, ordered by a per-feature ``LevelScale``.
- ``Flag(enabled)`` -- plain on/off gate.

``grants_access`` is the single interpretation of "is this usable at all";
nothing outside this module should look at level sentinels or counts directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

NON_GRANTING_LEVELS: frozenset[str] = frozenset({"none", "view_only"})

KIND_QUOTA = "quota"
KIND_LEVEL = "level"
KIND_FLAG = "flag"


@dataclass(frozen=True, slots=True)
class Unbounded:
    def __str__(self) -> str:
        return "unlimited"


@dataclass(frozen=True, slots=True)
class Count:
    n: int

    def __post_init__(self) -> None:
        if isinstance(self.n, bool) or not isinstance(self.n, int):
            raise TypeError(f"Count requires an integer, got {self.n!r}")
        if self.n < 0:
            raise ValueError(f"Count cannot be negative: {self.n}")

    def __str__(self) -> str:
        return str(self.n)


@dataclass(frozen=True, slots=True)
class Level:
    name: str

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError(f"Level requires a non-empty name, got {self.name!r}")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class Flag:
    enabled: bool

    def __post_init__(self) -> None:
        if not isinstance(self.enabled, bool):
            raise TypeError(f"Flag requires a boolean, got {self.enabled!r}")

    def __str__(self) -> str:
        return "on" if self.enabled else "off"


LimitValue = Union[Unbounded, Count, Level, Flag]

UNBOUNDED = Unbounded()


@dataclass(frozen=True, slots=True)
class LevelScale:
    """Explicit ordering of the named levels of a single feature, lowest first."""

    levels: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.levels:
            raise ValueError("A level scale needs at least one level.")
        if len(set(self.levels)) != len(self.levels):
            raise ValueError(f"Duplicate levels in scale: {self.levels!r}")

    @classmethod
    def of(cls, levels: Sequence[str]) -> "LevelScale":
        return cls(tuple(str(level).strip() for level in levels))

    def __contains__(self, name: object) -> bool:
        return name in self.levels

    def rank(self, name: str) -> int:
        try:
            return self.levels.index(name)
        except ValueError:
            raise ValueError(f"Level {name!r} is not part of scale {self.levels!r}") from None


def limit_kind(value: LimitValue) -> str:
    """Return the column kind of a value; ``Count`` and ``Unbounded`` share ``quota``."""
    if isinstance(value, (Unbounded, Count)):
        return KIND_QUOTA
    if isinstance(value, Level):
        return KIND_LEVEL
    if isinstance(value, Flag):
        return KIND_FLAG
    raise TypeError(f"Not a limit value: {value!r}")


def grants_access(value: LimitValue) -> bool:
    if isinstance(value, Unbounded):
        return True
    if isinstance(value, Count):
        return value.n > 0
    if isinstance(value, Flag):
        return value.enabled
    if isinstance(value, Level):
        return value.name not in NON_GRANTING_LEVELS
    raise TypeError(f"Not a limit value: {value!r}")


def is_improvement(current: LimitValue, candidate: LimitValue, scale: Optional[LevelScale] = None) -> bool:
    """True when ``candidate`` grants strictly more than ``current``.

    Values of different kinds never improve on each other. Level comparisons
    need the feature's scale.
    """
    if isinstance(candidate, Unbounded):
        return not isinstance(current, Unbounded)
    if isinstance(candidate, Count):
        return isinstance(current, Count) and candidate.n > current.n
    if isinstance(candidate, Flag):
        return isinstance(current, Flag) and candidate.enabled and not current.enabled
    if isinstance(candidate, Level):
        if not isinstance(current, Level):
            return False
        if scale is None:
            raise ValueError("Comparing levels requires the feature's level scale.")
        return scale.rank(candidate.name) > scale.rank(current.name)
    raise TypeError(f"Not a limit value: {candidate!r}")


def is_regression(previous: LimitValue, following: LimitValue, scale: Optional[LevelScale] = None) -> bool:
    """True when ``following`` grants strictly less than ``previous``."""
    return is_improvement(following, previous, scale)


def parse_limit_value(raw: Any) -> LimitValue:
    """Decode the JSON form: null, bool, int or str."""
    if raw is None:
        return UNBOUNDED
    if isinstance(raw, bool):
        return Flag(raw)
    if isinstance(raw, int):
        return Count(raw)
    if isinstance(raw, float) and raw.is_integer():
        return Count(int(raw))
    if isinstance(raw, str):
        return Level(raw.strip())
    raise ValueError(f"Unsupported limit value: {raw!r}")


def limit_to_raw(value: LimitValue) -> Optional[Union[int, str, bool]]:
    if isinstance(value, Unbounded):
        return None
    if isinstance(value, Count):
        return value.n
    if isinstance(value, Level):
        return value.name
    if isinstance(value, Flag):
        return value.enabled
    raise TypeError(f"Not a limit value: {value!r}")


__all__ = [
    "Count",
    "Flag",
    "KIND_FLAG",
    "KIND_LEVEL",
    "KIND_QUOTA",
    "Level",
    "LevelScale",
    "LimitValue",
    "NON_GRANTING_LEVELS",
    "UNBOUNDED",
    "Unbounded",
    "grants_access",
    "is_improvement",
    "is_regression",
    "limit_kind",
    "limit_to_raw",
    "parse_limit_value",
]
