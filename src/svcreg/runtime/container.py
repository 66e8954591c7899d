"""Hierarchical service container.

Maps service identifiers to instances, or to factories that build the
instance on first lookup. Lookups that miss locally fall through to an
optional parent provider, and registrations can be promoted to the
nearest ancestor that exposes a container.

Usage:
    root = ServiceContainer(name="root")
    root.add_service(UndoManager, UndoManager())

    child = ServiceContainer(root, name="editor")
    child.add_factory(TypeResolver, lambda c, ident: TypeResolver(c))
    child.get_service(UndoManager)   # found on root
    child.get_service(TypeResolver)  # built once, then cached

Single-threaded use only: callers serialize access themselves.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from svcreg.config import SvcRegConfig
from svcreg.errors import (
    InvalidArgumentError,
    InvalidServiceInstanceError,
    ServiceAlreadyExistsError,
    ServiceDisposalError,
)
from svcreg.runtime.entries import Factory, IdentifierMap, Instance, ServiceEntry
from svcreg.runtime.identity import IdentityPolicy, build_policy
from svcreg.runtime.logging_config import factory_context
from svcreg.runtime.protocols import (
    ContainerCapable,
    Disposable,
    ServiceContainerProtocol,
    ServiceFactory,
    ServiceProvider,
)

log = logging.getLogger(__name__)


class ServiceContainer:
    """A service registry with parent delegation and promotion.

    The container answers for its own container interfaces (see
    ``default_services``) without consulting its registry. The registry is
    allocated on first insertion and released by ``dispose()``; the parent
    is never owned or disposed by this container.
    """

    def __init__(
        self,
        parent: ServiceProvider | None = None,
        *,
        policy: IdentityPolicy | None = None,
        name: str | None = None,
    ) -> None:
        self._parent = parent
        self._policy = policy or build_policy()
        self.name = name or f"container-{id(self):x}"
        self._services: IdentifierMap | None = None
        self._disposed = False

    @classmethod
    def from_config(
        cls, config: SvcRegConfig, parent: ServiceProvider | None = None
    ) -> ServiceContainer:
        return cls(
            parent,
            policy=build_policy(config.registry.identity),
            name=config.registry.name,
        )

    # ── Properties ─────────────────────────────────────────────────────────

    @property
    def parent(self) -> ServiceProvider | None:
        return self._parent

    @property
    def policy(self) -> IdentityPolicy:
        return self._policy

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def default_services(self) -> Sequence[Any]:
        """Identifiers resolved to the container itself.

        Subclasses extend this to advertise further interfaces they
        implement, e.g. ``(*super().default_services, DesignerHost)``.
        """
        return _DEFAULT_SERVICES

    def _registry(self) -> IdentifierMap:
        if self._services is None:
            if self._disposed:
                log.warning("container.reuse_after_dispose name=%s", self.name)
            self._services = IdentifierMap(self._policy)
        return self._services

    def _ancestor(self) -> ServiceContainerProtocol | None:
        """Container capability of the parent, if it has one."""
        parent = self._parent
        if parent is None:
            return None
        if isinstance(parent, ContainerCapable):
            candidate = parent.as_container()
        else:
            candidate = parent.resolve(ServiceContainerProtocol)
        if isinstance(candidate, ServiceContainerProtocol):
            return candidate
        return None

    def _describe(self, identifier: Any) -> str:
        return self._policy.describe(identifier)

    # ── Registration ───────────────────────────────────────────────────────

    def add_service(
        self, identifier: Any, instance: Any, promote: bool = False
    ) -> None:
        """Register ``instance`` under ``identifier``.

        ``instance`` may also be a ``Factory`` entry, which is stored
        unresolved. With ``promote``, the registration goes to the parent's
        container instead, when there is one.

        Raises:
            InvalidArgumentError: identifier or instance is None.
            InvalidServiceInstanceError: instance is not of the identified type.
            ServiceAlreadyExistsError: identifier is already registered here.
        """
        if promote:
            ancestor = self._ancestor()
            if ancestor is not None:
                log.debug(
                    "container.promote op=add identifier=%s from=%s",
                    self._describe(identifier),
                    self.name,
                )
                ancestor.add_service(identifier, instance, promote)
                return

        self._require(identifier, "identifier")
        self._require(instance, "instance")
        if isinstance(instance, Factory):
            self._require_callable(instance.callback, identifier)
            entry: ServiceEntry = instance
        elif self._policy.accepts(identifier, instance):
            entry = Instance(instance)
        else:
            raise InvalidServiceInstanceError(
                f"Service instance must be an instance of "
                f"{self._describe(identifier)}, got {type(instance).__name__}",
                context={
                    "identifier": self._describe(identifier),
                    "instance_type": type(instance).__qualname__,
                },
            )
        self._store(identifier, entry)

    def add_factory(
        self, identifier: Any, factory: ServiceFactory, promote: bool = False
    ) -> None:
        """Register a factory called as ``factory(container, identifier)``.

        The factory runs on the first ``get_service`` for the identifier and
        never again; its result is type-checked at that point.
        """
        if promote:
            ancestor = self._ancestor()
            if ancestor is not None:
                log.debug(
                    "container.promote op=add_factory identifier=%s from=%s",
                    self._describe(identifier),
                    self.name,
                )
                ancestor.add_factory(identifier, factory, promote)
                return

        self._require(identifier, "identifier")
        self._require(factory, "factory")
        self._require_callable(factory, identifier)
        self._store(identifier, Factory(factory))

    def _store(self, identifier: Any, entry: ServiceEntry) -> None:
        registry = self._registry()
        if identifier in registry:
            raise ServiceAlreadyExistsError(
                f"Service {self._describe(identifier)} already exists in {self.name}",
                context={"identifier": self._describe(identifier)},
            )
        registry[identifier] = entry
        log.debug(
            "container.add name=%s identifier=%s kind=%s",
            self.name,
            self._describe(identifier),
            type(entry).__name__.lower(),
        )

    @staticmethod
    def _require(value: Any, argument: str) -> None:
        if value is None:
            raise InvalidArgumentError(
                f"{argument} must not be None", context={"argument": argument}
            )

    def _require_callable(self, factory: Any, identifier: Any) -> None:
        if not callable(factory):
            raise InvalidArgumentError(
                f"Factory for {self._describe(identifier)} is not callable",
                context={"argument": "factory"},
            )

    def remove_service(self, identifier: Any, promote: bool = False) -> None:
        """Remove a local registration. Unknown identifiers are ignored."""
        if promote:
            ancestor = self._ancestor()
            if ancestor is not None:
                log.debug(
                    "container.promote op=remove identifier=%s from=%s",
                    self._describe(identifier),
                    self.name,
                )
                ancestor.remove_service(identifier, promote)
                return

        self._require(identifier, "identifier")
        if self._services is None:
            return
        if self._services.pop(identifier, None) is not None:
            log.debug(
                "container.remove name=%s identifier=%s",
                self.name,
                self._describe(identifier),
            )

    # ── Resolution ─────────────────────────────────────────────────────────

    def get_service(self, identifier: Any) -> Any | None:
        """Resolve a service, or None when no level of the chain has it.

        Resolution order:
        1. Default identifiers (the container itself)
        2. Local registry, running a pending factory once
        3. Parent provider
        """
        if identifier is None:
            return None

        for default in self.default_services:
            if self._policy.equals(identifier, default):
                return self

        service = self._resolve_local(identifier)
        if service is None and self._parent is not None:
            return self._parent.resolve(identifier)
        return service

    def resolve(self, identifier: Any) -> Any | None:
        return self.get_service(identifier)

    def as_container(self) -> ServiceContainer:
        return self

    def _resolve_local(self, identifier: Any) -> Any | None:
        registry = self._services
        if registry is None:
            return None
        entry = registry.get(identifier)
        if entry is None:
            return None
        if isinstance(entry, Instance):
            return entry.value

        service = self._run_factory(entry, identifier)
        # The factory may have torn the registry down; only cache into a live one.
        if self._services is not None:
            self._services[identifier] = Instance(service)
        return service

    def _run_factory(self, entry: Factory, identifier: Any) -> Any | None:
        with factory_context(self.name, self._describe(identifier)):
            service = entry.callback(self, identifier)

        if service is not None and not self._policy.accepts(identifier, service):
            log.warning(
                "container.factory_rejected name=%s identifier=%s result_type=%s",
                self.name,
                self._describe(identifier),
                type(service).__qualname__,
            )
            return None
        log.debug(
            "container.created name=%s identifier=%s type=%s",
            self.name,
            self._describe(identifier),
            type(service).__name__,
        )
        return service

    # ── Inspection ─────────────────────────────────────────────────────────

    def has_service(self, identifier: Any) -> bool:
        """Check the local registry only: no defaults, parent, or factories."""
        return self._services is not None and identifier in self._services

    def registered_identifiers(self) -> list[Any]:
        if self._services is None:
            return []
        return sorted(self._services, key=self._describe)

    def status(self) -> dict[str, Any]:
        """Return container status for monitoring."""
        entries = list(self._services.values()) if self._services else []
        return {
            "name": self.name,
            "registered": len(entries),
            "instantiated": sum(
                1 for e in entries if isinstance(e, Instance) and e.value is not None
            ),
            "pending_factories": sum(1 for e in entries if isinstance(e, Factory)),
            "has_parent": self._parent is not None,
            "disposed": self._disposed,
        }

    # ── Teardown ───────────────────────────────────────────────────────────

    def dispose(self) -> None:
        """Release the registry and dispose every resolved disposable service.

        Safe to call more than once. Pending factories are dropped without
        being run, and a service stored under several identifiers is
        disposed once. A failing service does not stop the others; the
        first failure is re-raised as ServiceDisposalError afterwards.
        """
        registry, self._services = self._services, None
        self._disposed = True
        if registry is None:
            return

        seen: set[int] = set()
        failed: list[str] = []
        first_error: Exception | None = None
        for identifier, entry in registry.items():
            if not isinstance(entry, Instance):
                continue
            service = entry.value
            if id(service) in seen or not self._is_disposable(service):
                continue
            seen.add(id(service))
            try:
                service.dispose()
            except Exception as e:
                log.exception(
                    "container.dispose_error name=%s identifier=%s",
                    self.name,
                    self._describe(identifier),
                )
                failed.append(self._describe(identifier))
                if first_error is None:
                    first_error = e
        registry.clear()
        log.debug("container.disposed name=%s services=%d", self.name, len(seen))

        if first_error is not None:
            raise ServiceDisposalError(
                f"{len(failed)} service(s) failed to dispose in {self.name}",
                context={"failed": failed},
            ) from first_error

    @staticmethod
    def _is_disposable(service: Any) -> bool:
        # A class stored as a service has an unbound ``dispose``; only instances count.
        return not isinstance(service, type) and isinstance(service, Disposable)

    def __enter__(self) -> ServiceContainer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    def __repr__(self) -> str:
        count = len(self._services) if self._services else 0
        return f"ServiceContainer(name={self.name!r}, services={count})"


_DEFAULT_SERVICES: tuple[Any, ...] = (ServiceContainerProtocol, ServiceContainer)
