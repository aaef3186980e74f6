"""Ownership -- decide whether a blend's components can be removed.

Two independent checks gate every removal:

1. No other installed blend declares the component (a syntactic check
   against the cached manifests in the store).
2. The package manager no longer needs it: a formula must be a leaf, and a
   tap must not provide any installed formula.

Casks have no dependency information, so only the first check applies.
"""

from __future__ import annotations

import logging

from blend.brew.client import PackageManager
from blend.models import Component
from blend.store.local_store import BlendStore
from blend.store.manifest import ComponentIndex

logger = logging.getLogger(__name__)

CORE_REPOSITORY = "homebrew/core"


class OwnershipOracle:
    def __init__(self, package_manager: PackageManager, store: BlendStore):
        self.package_manager = package_manager
        self.store = store

    def leaves(self) -> frozenset[str]:
        return frozenset(self.package_manager.leaves())

    def is_free_package(self, name: str, leaves: frozenset[str] | None = None) -> bool:
        """True if no installed package depends on ``name``.

        ``brew leaves`` lists third-party formulae by full name and core
        formulae by short name, so a qualified name only matches its short
        form for the core tap.
        """
        if leaves is None:
            leaves = self.leaves()
        if name in leaves:
            return True
        repository, _, short_name = name.rpartition("/")
        return repository == CORE_REPOSITORY and short_name in leaves

    def is_free_repository(self, name: str) -> bool:
        """True if no installed package comes from the tap ``name``."""
        prefix = f"{name}/"
        return not any(p.startswith(prefix) for p in self.package_manager.installed_packages())

    def component_index(self, excluding: str | None = None) -> ComponentIndex:
        return ComponentIndex.build(self.store.manifests(excluding=excluding))

    def is_referenced_elsewhere(self, component: Component, excluding: str) -> bool:
        """True if another installed blend declares the same component."""
        return self.component_index(excluding).is_referenced_elsewhere(component, excluding)
