"""Blend lookup and search across taps.

Each tap may carry a ``BlendFormula`` directory with one manifest
(``<name>.brewfile``) and one info file (``<name>.text``) per blend.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from blend.config import BlendSettings
from blend.errors import BlendNotFound, InvalidQualifiedName
from blend.models import BlendHit, Repository
from blend.registry.repository_index import RepositoryIndex

logger = logging.getLogger(__name__)


def split_name(name: str) -> tuple[str | None, str]:
    """Split ``user/repo/blend`` into ``("user/repo", "blend")``.

    Unqualified names return ``(None, name)``.

    Raises:
        InvalidQualifiedName: If the tap segment is not in ``user/repo`` form.
    """
    if "/" not in name:
        return None, name
    repository, _, short_name = name.rpartition("/")
    if "/" not in repository or not all(repository.split("/")) or not short_name:
        raise InvalidQualifiedName(repository)
    return repository, short_name


class BlendLocator:
    """Finds blend manifests in the taps listed by a :class:`RepositoryIndex`."""

    def __init__(self, index: RepositoryIndex, settings: BlendSettings):
        self.index = index
        self.settings = settings

    def find(self, name: str) -> Path:
        """Return the upstream manifest path for a blend.

        ``name`` may be qualified (``user/repo/blend``); the tap is added if
        missing and only that tap is consulted.

        Raises:
            BlendNotFound: No tap provides the blend.
            InvalidQualifiedName: Malformed tap segment.
        """
        repository_name, short_name = split_name(name)
        if repository_name is None:
            repositories = self.index.list_repositories()
        else:
            repositories = [self._ensure_tapped(repository_name)]

        for repository in repositories:
            path = self._manifest_path(repository, short_name)
            if path.is_file():
                logger.debug("Found blend '%s' in %s", short_name, repository.name)
                return path

        raise BlendNotFound(short_name)

    def resolve(self, name: str) -> Path | None:
        """Like :meth:`find`, but returns None for a blend no tap provides."""
        try:
            return self.find(name)
        except BlendNotFound:
            return None

    def info(self, name: str) -> str:
        """Return the human-readable info text paired with a blend."""
        manifest = self.find(name)
        info_path = manifest.with_suffix(f".{self.settings.info_suffix}")
        if not info_path.is_file():
            raise BlendNotFound(split_name(name)[1], f"No information available for blend '{name}'")
        return info_path.read_text()

    def search(self, query: str = "") -> Iterator[BlendHit]:
        """Yield every blend whose name contains ``query``.

        An empty query matches all blends. Results follow tap priority;
        order within one tap is whatever the filesystem returns.
        """
        suffix = f".{self.settings.manifest_suffix}"
        for repository in self.index.list_repositories():
            formula_dir = repository.path / self.settings.formula_dir
            if not formula_dir.is_dir():
                continue
            for path in formula_dir.iterdir():
                if not path.name.endswith(suffix) or not path.is_file():
                    continue
                blend_name = path.name[: -len(suffix)]
                if query in blend_name:
                    yield BlendHit(repository=repository, name=blend_name)

    def _manifest_path(self, repository: Repository, name: str) -> Path:
        return repository.path / self.settings.formula_dir / f"{name}.{self.settings.manifest_suffix}"

    def _ensure_tapped(self, repository_name: str) -> Repository:
        repository = self.index.get(repository_name)
        if repository is None:
            logger.info("Tapping %s", repository_name)
            self.index.package_manager.tap(repository_name)
            repository = self.index.get(repository_name)
        if repository is None:
            raise BlendNotFound(repository_name, f"Tap '{repository_name}' is not available")
        return repository
