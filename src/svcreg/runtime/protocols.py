"""Capability protocols the registry talks to.

The container never depends on concrete collaborator types. Parents,
stored services and factories are recognised by these structural
protocols only.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ServiceProvider(Protocol):
    """Anything that can answer "give me the service for this identifier"."""

    def resolve(self, identifier: Any) -> Any | None: ...


@runtime_checkable
class ContainerCapable(Protocol):
    """A provider that can expose a promotable container for itself."""

    def as_container(self) -> ServiceContainerProtocol | None: ...


@runtime_checkable
class ServiceContainerProtocol(Protocol):
    """A provider that also accepts registrations."""

    def add_service(
        self, identifier: Any, instance: Any, promote: bool = False
    ) -> None: ...

    def add_factory(
        self, identifier: Any, factory: ServiceFactory, promote: bool = False
    ) -> None: ...

    def remove_service(self, identifier: Any, promote: bool = False) -> None: ...

    def get_service(self, identifier: Any) -> Any | None: ...

    def resolve(self, identifier: Any) -> Any | None: ...


@runtime_checkable
class Disposable(Protocol):
    """A stored service that releases resources when its container is torn down."""

    def dispose(self) -> None: ...


# (requesting_container, identifier) -> service or None
ServiceFactory = Callable[[ServiceContainerProtocol, Any], Any]
