"""Blend lifecycle -- install, uninstall, update and upgrade.

The orchestrator composes tap lookup, the local store, drift detection and
the ownership checks. All package manager work is strictly sequential:
later steps depend on the leaves freed by earlier ones.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Iterable

from blend.brew.client import PackageManager
from blend.config import BlendSettings
from blend.errors import (
    AlreadyInstalled,
    BlendError,
    BlendNotInstalled,
    PackageManagerError,
    UninstallFailed,
    UpgradeFailed,
)
from blend.models import (
    BatchResult,
    Component,
    ComponentKind,
    DriftReport,
    DriftState,
    UninstallReport,
    UpdateSummary,
)
from blend.registry.locator import BlendLocator, split_name
from blend.registry.repository_index import RepositoryIndex
from blend.store.local_store import BlendStore
from blend.store.manifest import scan_components
from blend.sync.drift import DriftDetector
from blend.sync.ownership import OwnershipOracle

logger = logging.getLogger(__name__)


class LifecycleOrchestrator:
    """Top-level blend operations."""

    def __init__(self, settings: BlendSettings, package_manager: PackageManager):
        self.settings = settings
        self.package_manager = package_manager
        self.store = BlendStore(settings.root, settings.manifest_suffix)
        self.index = RepositoryIndex(package_manager)
        self.locator = BlendLocator(self.index, settings)
        self.oracle = OwnershipOracle(package_manager, self.store)
        self.drift = DriftDetector(self.store, self.locator)

    # ── Install ──────────────────────────────────────────────────────

    def install(self, name: str) -> Path:
        """Install a blend and return the path of its cached manifest.

        Raises:
            BlendNotFound: No tap provides the blend.
            InvalidQualifiedName: Malformed ``user/repo/blend`` name.
            AlreadyInstalled: The blend is already in the store.
            InstallFailed: Copying or applying the manifest failed. The store
                entry is rolled back; anything the bundler already installed
                stays installed.
        """
        upstream = self.locator.find(name)
        _, short_name = split_name(name)
        if self.store.is_installed(short_name):
            raise AlreadyInstalled(short_name)

        with self.store.create(short_name):
            cached = self.store.write_cached_manifest(short_name, upstream.read_bytes())
            logger.info("Applying blend '%s' from %s", short_name, upstream)
            self.package_manager.apply_manifest(cached)

        return cached

    # ── Uninstall ────────────────────────────────────────────────────

    def uninstall(self, name: str, blend_only: bool = False) -> UninstallReport:
        """Uninstall a blend.

        With ``blend_only`` only the store entry goes. Otherwise every
        formula, cask and tap the blend declares is removed unless another
        installed blend declares it too or the package manager still needs
        it. Component failures are collected as warnings.

        Raises:
            BlendNotInstalled: The blend is not in the store.
            UninstallFailed: The cached manifest could not be read, or the
                store entry could not be removed.
        """
        if not self.store.is_installed(name):
            raise BlendNotInstalled(name)

        report = UninstallReport(blend_name=name, blend_only=blend_only)
        if not blend_only:
            owned = self._owned_components(name, report)
            self._remove_packages(
                [c for c in owned if c.kind == ComponentKind.PACKAGE], report
            )
            self._remove_casks(
                [c for c in owned if c.kind == ComponentKind.CASK], report
            )
            self._remove_repositories(
                [c for c in owned if c.kind == ComponentKind.REPOSITORY], report
            )
            for component in owned:
                if component.kind == ComponentKind.OTHER:
                    logger.debug("Leaving %s in place", component.declaration)

        self.store.remove(name)
        return report

    def _owned_components(self, name: str, report: UninstallReport) -> list[Component]:
        """Components of ``name`` that no other installed blend declares."""
        try:
            manifest = self.store.read_cached_manifest(name)
        except FileNotFoundError:
            _warn(report, f"Blend '{name}' has no cached manifest; removing the blend only")
            return []
        except OSError as e:
            raise UninstallFailed(
                f"Could not read cached manifest for blend '{name}': {e}. "
                "Use --blend-only to remove the blend record alone."
            ) from e

        index = self.oracle.component_index(excluding=name)
        owned = []
        for component in scan_components(manifest):
            if index.is_referenced_elsewhere(component, name):
                logger.info(
                    "Keeping %s, still used by %s",
                    component.declaration,
                    ", ".join(sorted(index.owners(component))),
                )
                continue
            owned.append(component)
        return owned

    def _remove_packages(self, packages: list[Component], report: UninstallReport) -> None:
        """Remove leaf formulae until the leaf set stops changing.

        Removing a formula can turn the formulae it depended on into leaves,
        so passes repeat. Each pass that continues has removed at least one
        formula, which bounds the loop by the number of formulae declared.
        """
        if not packages:
            return
        try:
            leaves = self.oracle.leaves()
        except PackageManagerError as e:
            _warn(report, f"Could not list leaf formulae, keeping all formulae: {e}")
            return

        remaining = list(packages)
        while remaining:
            report.leaf_passes += 1
            attempted = []
            removed = 0
            for component in remaining:
                if not self.oracle.is_free_package(component.name, leaves):
                    continue
                attempted.append(component)
                try:
                    self.package_manager.uninstall_package(component.name)
                except PackageManagerError as e:
                    _warn(report, f"Could not uninstall formula '{component.name}': {e}")
                    continue
                report.packages.append(component.name)
                removed += 1

            remaining = [c for c in remaining if c not in attempted]
            if not removed:
                break
            try:
                current = self.oracle.leaves()
            except PackageManagerError as e:
                _warn(report, f"Could not list leaf formulae, stopping early: {e}")
                break
            if current == leaves:
                break
            leaves = current

    def _remove_casks(self, casks: list[Component], report: UninstallReport) -> None:
        # No dependency information exists for casks, so they go unconditionally
        for component in casks:
            try:
                self.package_manager.uninstall_cask(component.name)
            except PackageManagerError as e:
                _warn(report, f"Could not uninstall cask '{component.name}': {e}")
                continue
            report.casks.append(component.name)

    def _remove_repositories(self, repositories: list[Component], report: UninstallReport) -> None:
        for component in repositories:
            try:
                if not self.oracle.is_free_repository(component.name):
                    logger.info("Keeping tap '%s', formulae from it are installed", component.name)
                    continue
                self.package_manager.remove_repository(component.name)
            except PackageManagerError as e:
                _warn(report, f"Could not untap '{component.name}': {e}")
                continue
            report.repositories.append(component.name)

    # ── Update / upgrade ─────────────────────────────────────────────

    def check_drift(self, name: str) -> DriftReport:
        return self.drift.check(name)

    def list_drifted(self) -> UpdateSummary:
        return self.drift.check_all()

    def upgrade(self, name: str) -> DriftReport:
        """Bring an installed blend in line with its upstream manifest.

        Returns the drift report taken *before* upgrading; a ``DRIFTED``
        state means the blend was upgraded. Up-to-date and orphaned blends
        are left alone.

        Raises:
            BlendNotInstalled: The blend is not in the store.
            UpgradeFailed: Reading a manifest, replacing the cached manifest or
                applying it failed.
        """
        report = self.check_drift(name)
        if report.state == DriftState.ORPHANED:
            logger.info("Blend '%s' no longer exists upstream; not upgrading", name)
            return report
        if report.state == DriftState.UP_TO_DATE:
            return report

        try:
            data = report.upstream_path.read_bytes()
        except OSError as e:
            raise UpgradeFailed(f"Could not read upstream manifest for blend '{name}': {e}") from e

        cached = self.store.replace_cached_manifest(name, data)
        logger.info("Applying upgraded blend '%s'", name)
        try:
            self.package_manager.apply_manifest(cached)
        except PackageManagerError as e:
            raise UpgradeFailed(f"Upgrading blend '{name}' failed: {e}") from e
        return report

    # ── Several blends at once ───────────────────────────────────────

    def install_many(self, names: Iterable[str]) -> BatchResult:
        return self._each(names, self.install)

    def uninstall_many(self, names: Iterable[str], blend_only: bool = False) -> BatchResult:
        return self._each(names, lambda name: self.uninstall(name, blend_only=blend_only))

    def upgrade_many(self, names: Iterable[str] | None = None) -> BatchResult:
        """Upgrade the given blends, or every installed blend."""
        names = list(names or ())
        return self._each(names or self.store.list(), self.upgrade)

    def _each(self, names: Iterable[str], operation: Callable[[str], Any]) -> BatchResult:
        result = BatchResult()
        for name in names:
            try:
                result.results[name] = operation(name)
            except BlendError as e:
                logger.debug("Blend '%s' failed: %s", name, e)
                result.failed[name] = e
        return result


def _warn(report: UninstallReport, message: str) -> None:
    logger.warning("%s", message)
    report.warnings.append(message)
