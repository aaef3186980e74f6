"""Creation and removal of the blend store root ("install-self")."""

from __future__ import annotations

import getpass
import logging
import os
import shutil
import subprocess
from pathlib import Path

from blend.errors import NotSetUp, SetupFailed, TeardownFailed

logger = logging.getLogger(__name__)

# Same group and mode homebrew-cask uses for its shared directories
ADMIN_GROUP = "admin"


def is_installed(root: Path) -> bool:
    return Path(root).is_dir()


def check(root: Path) -> None:
    """Raise :class:`NotSetUp` unless the store root exists."""
    if not is_installed(root):
        raise NotSetUp("brew-blend is not installed")


def install_self(root: Path) -> bool:
    """Create the store root. Returns False if it already existed.

    Uses ``sudo`` when the parent directory is not writable by the
    current user, then hands the directory back to that user so later
    runs need no elevated permissions.
    """
    root = Path(root)
    if is_installed(root):
        return False

    if _writable(_existing_ancestor(root)):
        try:
            root.mkdir(parents=True, exist_ok=True)
            root.chmod(root.stat().st_mode | 0o070)
        except OSError as e:
            raise SetupFailed(f"Could not create '{root}': {e}") from e
    else:
        logger.warning("Elevated permissions needed to create '%s'", root)
        owner = f"{getpass.getuser()}:{ADMIN_GROUP}"
        _sudo(SetupFailed, "mkdir", "-p", str(root))
        _sudo(SetupFailed, "chmod", "g+rwx", str(root))
        _sudo(SetupFailed, "chown", owner, str(root))

    logger.info("Created blend store at %s", root)
    return True


def uninstall_self(root: Path) -> bool:
    """Remove the store root and everything in it. Returns False if absent."""
    root = Path(root)
    if not is_installed(root):
        return False

    if _writable(root.parent):
        try:
            shutil.rmtree(root)
        except OSError as e:
            raise TeardownFailed(f"Could not remove '{root}': {e}") from e
    else:
        logger.warning("Elevated permissions needed to remove '%s'", root)
        _sudo(TeardownFailed, "rm", "-rf", str(root))

    logger.info("Removed blend store at %s", root)
    return True


def ensure_installed(root: Path) -> bool:
    """Create the store root if needed. Returns True if it was created."""
    if is_installed(root):
        return False
    return install_self(root)


def _writable(path: Path) -> bool:
    return os.access(path, os.R_OK | os.W_OK)


def _existing_ancestor(path: Path) -> Path:
    for candidate in path.parents:
        if candidate.exists():
            return candidate
    return Path.cwd()


def _sudo(error: type[Exception], *args: str) -> None:
    command = ["sudo", *args]
    try:
        proc = subprocess.run(command, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise error(f"Could not run {' '.join(command)}: sudo not available") from e
    if proc.returncode != 0:
        raise error(f"Command '{' '.join(command)}' failed: {proc.stderr.strip()}")
