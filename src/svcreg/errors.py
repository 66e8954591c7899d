"""Structured error taxonomy for svcreg.

Every error carries a machine-readable code and severity so that hosts
embedding the registry can report failures uniformly.

Error code format: SR_<DOMAIN>_<ISSUE>
Domains: REGISTRY, LIFECYCLE, CONFIG
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class Severity(StrEnum):
    CRITICAL = "critical"  # host cannot continue
    ERROR = "error"  # operation failed
    WARN = "warn"  # rejected, registry unchanged


class ErrorDomain(StrEnum):
    REGISTRY = "REGISTRY"
    LIFECYCLE = "LIFECYCLE"
    CONFIG = "CONFIG"


# ── Base exception ─────────────────────────────────────────────────────────


class RegistryError(Exception):
    """Base exception for all svcreg errors."""

    code: str = "SR_UNKNOWN"
    domain: ErrorDomain = ErrorDomain.REGISTRY
    severity: Severity = Severity.ERROR

    def __init__(
        self,
        message: str = "",
        *,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.code
        self.context: dict[str, Any] = context or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "message": self.message,
            "context": self.context,
        }


# ── Registry errors ────────────────────────────────────────────────────────


class InvalidArgumentError(RegistryError, ValueError):
    code = "SR_REGISTRY_INVALID_ARGUMENT"
    domain = ErrorDomain.REGISTRY
    severity = Severity.ERROR


class InvalidServiceInstanceError(RegistryError, TypeError):
    code = "SR_REGISTRY_INVALID_INSTANCE"
    domain = ErrorDomain.REGISTRY
    severity = Severity.ERROR


class ServiceAlreadyExistsError(RegistryError):
    code = "SR_REGISTRY_SERVICE_EXISTS"
    domain = ErrorDomain.REGISTRY
    severity = Severity.WARN


# ── Lifecycle errors ───────────────────────────────────────────────────────


class ServiceDisposalError(RegistryError):
    """Raised after teardown when one or more services failed to dispose.

    ``__cause__`` holds the first failure; ``context["failed"]`` lists the
    display names of every identifier whose service raised.
    """

    code = "SR_LIFECYCLE_DISPOSAL_FAILED"
    domain = ErrorDomain.LIFECYCLE
    severity = Severity.ERROR


# ── Config errors ──────────────────────────────────────────────────────────


class ConfigValidationError(RegistryError):
    code = "SR_CONFIG_INVALID"
    domain = ErrorDomain.CONFIG
    severity = Severity.CRITICAL
