"""Tests for the structured error taxonomy."""

from __future__ import annotations

from svcreg.errors import (
    ConfigValidationError,
    ErrorDomain,
    InvalidArgumentError,
    InvalidServiceInstanceError,
    RegistryError,
    ServiceAlreadyExistsError,
    ServiceDisposalError,
    Severity,
)


class TestErrorTaxonomy:
    def test_base_error_defaults(self):
        e = RegistryError("something broke")
        assert e.code == "SR_UNKNOWN"
        assert e.domain == ErrorDomain.REGISTRY
        assert e.severity == Severity.ERROR
        assert e.message == "something broke"
        assert str(e) == "something broke"

    def test_base_error_default_message(self):
        e = RegistryError()
        assert e.message == "SR_UNKNOWN"

    def test_to_dict(self):
        e = ServiceAlreadyExistsError(
            "duplicate", context={"identifier": "app.UndoManager"}
        )
        d = e.to_dict()
        assert d["code"] == "SR_REGISTRY_SERVICE_EXISTS"
        assert d["domain"] == "REGISTRY"
        assert d["severity"] == "warn"
        assert d["message"] == "duplicate"
        assert d["context"] == {"identifier": "app.UndoManager"}

    def test_registry_errors(self):
        assert InvalidArgumentError.code == "SR_REGISTRY_INVALID_ARGUMENT"
        assert InvalidServiceInstanceError.code == "SR_REGISTRY_INVALID_INSTANCE"
        assert ServiceAlreadyExistsError.domain == ErrorDomain.REGISTRY

    def test_builtin_bases(self):
        assert issubclass(InvalidArgumentError, ValueError)
        assert issubclass(InvalidServiceInstanceError, TypeError)
        assert not issubclass(ServiceAlreadyExistsError, ValueError)

    def test_lifecycle_and_config(self):
        assert ServiceDisposalError.domain == ErrorDomain.LIFECYCLE
        assert ConfigValidationError.severity == Severity.CRITICAL

    def test_all_derive_from_base(self):
        for cls in (
            InvalidArgumentError,
            InvalidServiceInstanceError,
            ServiceAlreadyExistsError,
            ServiceDisposalError,
            ConfigValidationError,
        ):
            assert issubclass(cls, RegistryError)

    def test_error_context(self):
        e = RegistryError("fail", context={"key": "value"})
        assert e.context == {"key": "value"}
