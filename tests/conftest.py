"""Shared test helpers: an in-memory package manager and tap builders."""

from __future__ import annotations

from pathlib import Path

from blend.config import BlendSettings
from blend.errors import PackageManagerError
from blend.models import ComponentKind, Repository
from blend.store.manifest import scan_components


class FakePackageManager:
    """In-memory stand-in for Homebrew.

    ``catalog`` maps formula names to their dependencies; applying a manifest
    installs each declared formula along with its dependencies. Every call
    is recorded in ``calls`` as ``(operation, argument)``.
    """

    def __init__(self, repositories: list[Repository] | None = None, catalog: dict | None = None):
        self.repositories: list[Repository] = list(repositories or [])
        self.catalog: dict[str, set[str]] = {k: set(v) for k, v in (catalog or {}).items()}
        self.packages: dict[str, set[str]] = {}
        self.casks: set[str] = set()
        self.tappable: dict[str, Repository] = {}
        self.calls: list[tuple[str, str]] = []
        self.failing: set[tuple[str, str]] = set()
        self.fail_apply = False

    # ── Test setup ──

    def add_package(self, name: str, deps: set[str] | tuple = ()) -> None:
        deps = set(deps) or self.catalog.get(name, set())
        for dep in deps:
            if dep not in self.packages:
                self.add_package(dep)
        self.packages[name] = set(deps)

    def fail(self, operation: str, name: str) -> None:
        self.failing.add((operation, name))

    # ── PackageManager ──

    def list_repositories(self) -> list[Repository]:
        self.calls.append(("list_repositories", ""))
        return list(self.repositories)

    def apply_manifest(self, manifest_path: Path) -> None:
        self.calls.append(("apply_manifest", str(manifest_path)))
        if self.fail_apply:
            raise PackageManagerError(["brew", "bundle"], 1, "bundle failed")
        for component in scan_components(Path(manifest_path).read_bytes()):
            if component.kind == ComponentKind.PACKAGE:
                self.add_package(component.name)
            elif component.kind == ComponentKind.CASK:
                self.casks.add(component.name)
            elif component.kind == ComponentKind.REPOSITORY:
                if not any(r.name == component.name for r in self.repositories):
                    self.repositories.append(Repository(component.name, Path("/taps") / component.name))

    def uninstall_package(self, name: str) -> None:
        self._check("uninstall_package", name)
        if name not in self.packages:
            raise PackageManagerError(["brew", "uninstall", name], 1, "No such keg")
        if any(name in deps for other, deps in self.packages.items() if other != name):
            raise PackageManagerError(["brew", "uninstall", name], 1, "Refusing to uninstall")
        del self.packages[name]

    def uninstall_cask(self, name: str) -> None:
        self._check("uninstall_cask", name)
        self.casks.discard(name)

    def remove_repository(self, name: str) -> None:
        self._check("remove_repository", name)
        self.repositories = [r for r in self.repositories if r.name != name]

    def leaves(self) -> frozenset[str]:
        self.calls.append(("leaves", ""))
        needed = {dep for deps in self.packages.values() for dep in deps}
        return frozenset(p for p in self.packages if p not in needed)

    def installed_packages(self) -> list[str]:
        self.calls.append(("installed_packages", ""))
        return sorted(self.packages)

    def tap(self, name: str) -> None:
        self._check("tap", name)
        if name not in self.tappable:
            raise PackageManagerError(["brew", "tap", name], 1, "Repository not found")
        self.repositories.append(self.tappable[name])

    def _check(self, operation: str, name: str) -> None:
        self.calls.append((operation, name))
        if (operation, name) in self.failing:
            raise PackageManagerError(["brew", operation, name], 1, "simulated failure")

    def calls_to(self, operation: str) -> list[str]:
        return [arg for op, arg in self.calls if op == operation]

    @property
    def mutating_calls(self) -> list[tuple[str, str]]:
        mutating = {"apply_manifest", "uninstall_package", "uninstall_cask", "remove_repository", "tap"}
        return [c for c in self.calls if c[0] in mutating]


def make_tap(
    base: str | Path,
    name: str,
    blends: dict[str, str],
    pinned: bool = False,
    info: dict[str, str] | None = None,
) -> Repository:
    """Create a tap directory holding the given blend manifests."""
    path = Path(base) / "Taps" / name
    formula_dir = path / "BlendFormula"
    formula_dir.mkdir(parents=True, exist_ok=True)
    for blend_name, text in blends.items():
        (formula_dir / f"{blend_name}.brewfile").write_text(text)
    for blend_name, text in (info or {}).items():
        (formula_dir / f"{blend_name}.text").write_text(text)
    return Repository(name=name, path=path, pinned=pinned)


def make_settings(base: str | Path) -> BlendSettings:
    """Settings with the store root created under ``base``."""
    settings = BlendSettings(prefix=Path(base))
    settings.root.mkdir(parents=True, exist_ok=True)
    return settings
