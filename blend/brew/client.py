"""Homebrew access -- the only place brew-blend runs external commands.

Everything else talks to the package manager through the
:class:`PackageManager` protocol, so tests can substitute an in-memory fake.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Iterable, Protocol

from blend.errors import PackageManagerError
from blend.models import Repository

logger = logging.getLogger(__name__)


class PackageManager(Protocol):
    """Operations brew-blend needs from the underlying package manager."""

    def list_repositories(self) -> list[Repository]:
        """Installed repositories (taps), in no particular order."""

    def apply_manifest(self, manifest_path: Path) -> None:
        """Install everything a manifest declares."""

    def uninstall_package(self, name: str) -> None: ...

    def uninstall_cask(self, name: str) -> None: ...

    def remove_repository(self, name: str) -> None: ...

    def leaves(self) -> frozenset[str]:
        """Installed packages that no other installed package depends on."""

    def installed_packages(self) -> list[str]:
        """Fully-qualified names of every installed package."""

    def tap(self, name: str) -> None: ...


class HomebrewClient:
    """:class:`PackageManager` backed by the ``brew`` executable."""

    def __init__(self, executable: str = "brew", timeout: int | None = None):
        self.executable = executable
        self.timeout = timeout

    def list_repositories(self) -> list[Repository]:
        output = self._run("tap-info", "--json=v1", "--installed")
        try:
            data = json.loads(output or "[]")
        except json.JSONDecodeError as e:
            raise PackageManagerError(
                [self.executable, "tap-info"], stderr=f"invalid JSON: {e}"
            ) from e
        return [
            Repository(
                name=item["name"],
                path=Path(item["path"]),
                pinned=bool(item.get("pinned", False)),
            )
            for item in data
            if item.get("path")
        ]

    def apply_manifest(self, manifest_path: Path) -> None:
        # Output goes straight to the terminal so the user can follow progress
        self._run("bundle", f"--file={manifest_path}", capture=False)

    def uninstall_package(self, name: str) -> None:
        self._run("uninstall", name)

    def uninstall_cask(self, name: str) -> None:
        self._run("uninstall", "--cask", name)

    def remove_repository(self, name: str) -> None:
        self._run("untap", name)

    def leaves(self) -> frozenset[str]:
        return frozenset(_lines(self._run("leaves")))

    def installed_packages(self) -> list[str]:
        return list(_lines(self._run("list", "--formula", "--full-name")))

    def tap(self, name: str) -> None:
        self._run("tap", name)

    def _run(self, *args: str, capture: bool = True) -> str:
        command = [self.executable, *args]
        logger.debug("Running %s", " ".join(command))
        try:
            proc = subprocess.run(
                command,
                capture_output=capture,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise PackageManagerError(command, stderr=f"'{self.executable}' not found in PATH") from e
        except subprocess.TimeoutExpired as e:
            raise PackageManagerError(command, stderr=f"timed out after {self.timeout}s") from e

        if proc.returncode != 0:
            raise PackageManagerError(command, proc.returncode, proc.stderr or "")
        return proc.stdout or ""


def brew_prefix(executable: str = "brew") -> str:
    """Return the output of ``brew --prefix``."""
    return HomebrewClient(executable)._run("--prefix").strip()


def _lines(output: str) -> Iterable[str]:
    return (line.strip() for line in output.splitlines() if line.strip())
