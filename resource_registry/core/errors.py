from __future__ import annotations

from typing import Optional


class ResourceRegistryError(Exception):
    """Base class for errors raised by the resource registry."""


class ConfigurationError(ResourceRegistryError):
    """
    Required configuration is missing or invalid.

    Raised at startup (e.g., no master connection string). Callers should not retry.
    """


class TargetUnavailableError(ResourceRegistryError):
    """
    A reconciliation target (master or tenant database) could not be processed.

    The target URL is always stored with its password hidden.
    """

    def __init__(self, target: str, message: Optional[str] = None) -> None:
        self.target = target
        super().__init__(message or f"Target database unavailable: {target}")
