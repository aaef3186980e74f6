"""File-based store of installed blends.

Layout under the store root (``$HOMEBREW_PREFIX/Elevage`` by default)::

    <root>/<name>/<name>.brewfile

A blend is installed exactly when its directory exists. The cached
manifest is written once and only ever replaced wholesale.
"""

from __future__ import annotations

import logging
import os
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from blend.errors import AlreadyInstalled, BlendNotFound, BlendNotInstalled, InstallFailed, UninstallFailed, UpgradeFailed

logger = logging.getLogger(__name__)


class BlendStore:
    """Installed-blend state rooted at a single directory."""

    def __init__(self, root: str | Path, manifest_suffix: str = "brewfile"):
        self.root = Path(root)
        self.manifest_suffix = manifest_suffix

    def list(self) -> list[str]:
        """Names of all installed blends, sorted."""
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_dir())

    @staticmethod
    def is_valid_name(name: str) -> bool:
        """A blend name must be a single path component below the root."""
        return bool(name) and name not in (".", "..") and "/" not in name and os.sep not in name

    def is_installed(self, name: str) -> bool:
        return self.is_valid_name(name) and self.blend_dir(name).is_dir()

    def blend_dir(self, name: str) -> Path:
        """Directory of blend ``name``.

        Raises:
            BlendNotFound: ``name`` is empty, a relative path or contains a separator.
        """
        if not self.is_valid_name(name):
            raise BlendNotFound(name, f"'{name}' is not a valid blend name")
        return self.root / name

    def manifest_path(self, name: str) -> Path:
        return self.blend_dir(name) / f"{name}.{self.manifest_suffix}"

    @contextmanager
    def create(self, name: str) -> Iterator[Path]:
        """Create the directory for a blend, removing it again on failure.

        Usage::

            with store.create("amp-stack") as directory:
                store.write_cached_manifest("amp-stack", data)

        Raises:
            AlreadyInstalled: The directory already exists.
            InstallFailed: Anything inside the block (or the mkdir) failed.
        """
        directory = self.blend_dir(name)
        if directory.exists():
            raise AlreadyInstalled(name)

        try:
            directory.mkdir()
        except OSError as e:
            raise InstallFailed(f"Could not create directory for blend '{name}': {e}") from e
        logger.debug("Created %s", directory)

        try:
            yield directory
        except Exception as e:
            shutil.rmtree(directory, ignore_errors=True)
            if isinstance(e, InstallFailed):
                raise
            raise InstallFailed(f"Installing blend '{name}' failed: {e}") from e

    def remove(self, name: str) -> None:
        """Delete a blend's directory.

        Raises:
            BlendNotInstalled: No such blend.
            UninstallFailed: The directory could not be removed.
        """
        directory = self.blend_dir(name)
        if not directory.is_dir():
            raise BlendNotInstalled(name)
        if directory.resolve().parent != self.root.resolve():
            raise UninstallFailed(f"Refusing to remove '{directory}': not inside '{self.root}'")
        try:
            shutil.rmtree(directory)
        except OSError as e:
            raise UninstallFailed(
                f"Could not remove '{directory}': {e}. "
                "Remove the directory manually to reset this blend."
            ) from e
        logger.debug("Removed %s", directory)

    def read_cached_manifest(self, name: str) -> bytes:
        """Raw bytes of the cached manifest.

        Raises:
            BlendNotInstalled: The blend is not in the store.
            FileNotFoundError: The blend has no cached manifest.
        """
        if not self.is_installed(name):
            raise BlendNotInstalled(name)
        return self.manifest_path(name).read_bytes()

    def write_cached_manifest(self, name: str, data: bytes) -> Path:
        path = self.manifest_path(name)
        path.write_bytes(data)
        return path

    def replace_cached_manifest(self, name: str, data: bytes) -> Path:
        """Swap in a new cached manifest.

        The old file is removed before the new one is written; if the write
        fails the blend is left without a cached manifest.
        """
        path = self.manifest_path(name)
        try:
            path.unlink(missing_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise UpgradeFailed(f"Could not replace cached manifest for blend '{name}': {e}") from e
        return path

    def manifests(self, excluding: str | None = None) -> Iterator[tuple[str, bytes]]:
        """Yield ``(name, cached manifest)`` for installed blends."""
        for name in self.list():
            if name == excluding:
                continue
            path = self.manifest_path(name)
            if path.is_file():
                yield name, path.read_bytes()
