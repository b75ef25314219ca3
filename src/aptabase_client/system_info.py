"""System information providers (OS, locale, device)."""

from __future__ import annotations

import locale
import logging
import platform
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import cached_property


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SystemInfo:
    """Host environment details reported with each batch."""
    os_name: str = ""
    os_version: str = ""
    locale: str = ""
    device_model: str = ""


class SystemInfoProvider(ABC):
    """
    Abstract source of host environment details.

    Implementations are queried once per batch, so anything expensive
    should be cached by the provider itself.
    """

    @abstractmethod
    def get_system_info(self) -> SystemInfo:
        ...


@dataclass(frozen=True)
class StaticSystemInfoProvider(SystemInfoProvider):
    """Provider returning fixed values (embedded hosts, tests)."""
    info: SystemInfo = SystemInfo()

    def get_system_info(self) -> SystemInfo:
        return self.info


_OS_NAMES = {
    "Darwin": "macOS",
    "Windows": "Windows",
    "Linux": "Linux",
    "FreeBSD": "FreeBSD",
    "OpenBSD": "OpenBSD",
    "NetBSD": "NetBSD",
}


class PlatformSystemInfoProvider(SystemInfoProvider):
    """
    Provider built on the standard ``platform`` and ``locale`` modules.

    Values are probed once and cached for the life of the provider.
    """

    def get_system_info(self) -> SystemInfo:
        return self._info

    @cached_property
    def _info(self) -> SystemInfo:
        info = SystemInfo(
            os_name=self._os_name(),
            os_version=self._os_version(),
            locale=self._locale(),
            device_model=self._device_model(),
        )
        logger.debug(f"Probed system info: {info}")
        return info

    @staticmethod
    def _os_name() -> str:
        system = platform.system()
        return _OS_NAMES.get(system, system)

    @staticmethod
    def _os_version() -> str:
        system = platform.system()
        if system == "Darwin":
            release = platform.mac_ver()[0]
            if release:
                return release
        elif system == "Windows":
            return platform.version()
        return platform.release()

    @staticmethod
    def _locale() -> str:
        try:
            lang = locale.getlocale()[0]
        except ValueError:
            # Unparseable LANG/LC_* values
            lang = None
        if not lang:
            return ""
        return lang.replace("_", "-")

    @staticmethod
    def _device_model() -> str:
        # Hardware model probes are platform-specific; report the architecture
        return platform.machine()
