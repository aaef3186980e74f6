"""Priority-ordered view of the taps known to the package manager."""

from __future__ import annotations

from blend.brew.client import PackageManager
from blend.models import Repository


class RepositoryIndex:
    """Lists taps with pinned taps first, so their blends shadow the rest."""

    def __init__(self, package_manager: PackageManager):
        self.package_manager = package_manager

    def list_repositories(self) -> list[Repository]:
        repositories = self.package_manager.list_repositories()
        # sorted() is stable, so the package manager's order survives among equals
        return sorted(repositories, key=lambda r: not r.pinned)

    def get(self, name: str) -> Repository | None:
        for repository in self.list_repositories():
            if repository.name == name:
                return repository
        return None
