"""Error taxonomy for brew-blend.

Every error carries the process exit code the CLI reports for it, so a
failing command can be identified from its exit status alone.
"""

from __future__ import annotations


class BlendError(Exception):
    """Base class for all brew-blend failures."""

    exit_code = 1


class ConfigError(BlendError):
    exit_code = 2


class NotSetUp(BlendError):
    """The blend store root does not exist."""

    exit_code = 21


class SetupFailed(BlendError):
    exit_code = 31


class TeardownFailed(BlendError):
    exit_code = 41


class BlendNotFound(BlendError):
    """No repository provides the requested blend."""

    exit_code = 4

    def __init__(self, name: str, message: str = ""):
        self.name = name
        super().__init__(message or f"Blend '{name}' not found")


class BlendNotInstalled(BlendNotFound):
    """The blend has no entry in the local store."""

    exit_code = 5

    def __init__(self, name: str):
        super().__init__(name, f"Blend '{name}' is not installed")


class InvalidQualifiedName(BlendError):
    exit_code = 85

    def __init__(self, repository: str):
        self.repository = repository
        super().__init__(
            f"The given tap '{repository}' is not valid; "
            "it should be in user/repository format"
        )


class AlreadyInstalled(BlendError):
    exit_code = 81

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Blend '{name}' is already installed")


class InstallFailed(BlendError):
    exit_code = 84


class UninstallFailed(BlendError):
    exit_code = 6


class UpgradeFailed(BlendError):
    exit_code = 101


class PackageManagerError(BlendError):
    """An external package manager command failed."""

    exit_code = 1

    def __init__(self, command: list[str], returncode: int | None = None, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = f" (exit {returncode})" if returncode is not None else ""
        message = f"Command '{' '.join(command)}' failed{detail}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)
