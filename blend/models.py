"""Data models -- repositories, manifest components, drift and uninstall results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class Repository:
    """A tap known to the package manager."""

    name: str  # user/repo
    path: Path
    pinned: bool = False


class ComponentKind(Enum):
    """Kinds of declaration that can appear in a blend manifest."""

    PACKAGE = "brew"
    REPOSITORY = "tap"
    CASK = "cask"
    OTHER = "other"

    @classmethod
    def from_keyword(cls, keyword: str) -> ComponentKind:
        for kind in cls:
            if kind.value == keyword and kind is not cls.OTHER:
                return kind
        return cls.OTHER


@dataclass(frozen=True)
class Component:
    """A single declaration line reduced to its kind and name.

    ``declaration`` is the normalized ``<keyword> <quoted-name>`` text used
    for the shared-ownership test; ``name`` is the unquoted component name.
    """

    kind: ComponentKind
    keyword: str
    name: str
    declaration: str


@dataclass(frozen=True)
class BlendHit:
    """A blend manifest found by search."""

    repository: Repository
    name: str

    @property
    def qualified_name(self) -> str:
        return f"{self.repository.name}/{self.name}"


class DriftState(Enum):
    UP_TO_DATE = "up_to_date"
    DRIFTED = "drifted"
    ORPHANED = "orphaned"  # upstream manifest no longer exists


@dataclass
class DriftReport:
    """Comparison of an installed blend's cached manifest against upstream."""

    blend_name: str
    state: DriftState
    local_digest: str = ""
    upstream_digest: str = ""
    upstream_path: Path | None = None

    @property
    def has_drift(self) -> bool:
        return self.state == DriftState.DRIFTED

    def summary(self) -> str:
        if self.state == DriftState.ORPHANED:
            return f"{self.blend_name}: removed upstream"
        if self.has_drift:
            return f"{self.blend_name}: outdated"
        return f"{self.blend_name}: up to date"


@dataclass
class UpdateSummary:
    """Outcome of checking every installed blend for drift."""

    drifted: list[str] = field(default_factory=list)
    orphaned: list[str] = field(default_factory=list)
    up_to_date: list[str] = field(default_factory=list)

    @property
    def updated(self) -> bool:
        return bool(self.drifted)


@dataclass
class UninstallReport:
    """What an uninstall removed, and what it skipped or failed to remove."""

    blend_name: str
    blend_only: bool = False
    packages: list[str] = field(default_factory=list)
    casks: list[str] = field(default_factory=list)
    repositories: list[str] = field(default_factory=list)
    leaf_passes: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def removed_count(self) -> int:
        return len(self.packages) + len(self.casks) + len(self.repositories)


@dataclass
class BatchResult:
    """Per-blend outcomes of a command given several blend names."""

    results: dict[str, Any] = field(default_factory=dict)
    failed: dict[str, Exception] = field(default_factory=dict)

    @property
    def succeeded(self) -> list[str]:
        return list(self.results)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def exit_code(self) -> int:
        for error in self.failed.values():
            return getattr(error, "exit_code", 1)
        return 0
