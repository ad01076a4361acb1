"""
Adapter base — the contracts between the update workflow and host tools.

The workflow never shells out to a package manager or to docker itself.
It talks to a ``PackageInstaller`` and a ``ComposeRunner`` it was handed,
so the core logic runs in tests without either tool present.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path


class ComposeRunner(ABC):
    """Runs compose commands against a project."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g., 'docker compose')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether a compose binary can be found.  Fast, never raises."""

    @abstractmethod
    def restart(self, config_path: Path, project_name: str) -> int:
        """Restart every service of the project; return the exit status.

        Raises:
            PrerequisiteMissing: No compose binary is available.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class PackageInstaller(ABC):
    """Installs OS packages."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The package manager identifier (e.g., 'apt')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether a supported package manager was detected."""

    @abstractmethod
    def install(self, packages: Sequence[str]) -> None:
        """Install ``packages``.

        Raises:
            PrerequisiteMissing: No package manager, or the install failed.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
