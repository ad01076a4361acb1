"""
Error taxonomy — every way a core update can fail.

Services raise these; use cases catch ``CoreUpdateError`` and record it
on their result; the CLI prints ``"<Category>: <message>"`` and exits
with the error's ``exit_code``.  The category word is the class name,
so scripts can match on it without parsing the message.
"""

from __future__ import annotations


class CoreUpdateError(Exception):
    """Base class for all expected core-update failures."""

    exit_code: int = 1

    @property
    def category(self) -> str:
        """Stable, machine-matchable name of this failure kind."""
        return type(self).__name__

    def render(self) -> str:
        return f"{self.category}: {self}"


# ── Host ────────────────────────────────────────────────────────


class InsufficientPrivileges(CoreUpdateError):
    """The update command was run without root."""

    exit_code = 3


class InvalidSettings(CoreUpdateError):
    """An environment override could not be parsed."""

    exit_code = 4


class PrerequisiteMissing(CoreUpdateError):
    """A required host tool is absent and could not be installed."""

    exit_code = 5


class UnsupportedOS(CoreUpdateError):
    exit_code = 10


class UnsupportedArchitecture(CoreUpdateError):
    exit_code = 11


# ── Release index ───────────────────────────────────────────────


class NoReleasesFound(CoreUpdateError):
    """The repository has no release to call "latest"."""

    exit_code = 20


class ReleaseNotFound(CoreUpdateError):
    """An explicitly requested tag has no matching release."""

    exit_code = 21


class TransientFetchError(CoreUpdateError):
    """Network-level failure talking to the release index or download host.

    Distinct from ``NoReleasesFound`` / ``ReleaseNotFound`` so callers can
    decide whether a retry makes sense.
    """

    exit_code = 22

    def __init__(self, message: str, *, url: str = "", status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class NoMatchingAsset(CoreUpdateError):
    exit_code = 23


# ── Install ─────────────────────────────────────────────────────


class ExtractionIncomplete(CoreUpdateError):
    """The archive did not yield an executable binary at the canonical path."""

    exit_code = 30


# ── Compose file ────────────────────────────────────────────────


class ConfigNotFound(CoreUpdateError):
    exit_code = 40


class ConfigMalformed(CoreUpdateError):
    exit_code = 41


class ConfigWriteFailed(CoreUpdateError):
    """The patched compose file could not be written back."""

    exit_code = 42


# ── Restart ─────────────────────────────────────────────────────


class RestartFailed(CoreUpdateError):
    """The compose restart exited non-zero.

    The binary swap and compose edit that preceded it are NOT reverted.
    """

    exit_code = 50

    def __init__(self, message: str, *, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode
