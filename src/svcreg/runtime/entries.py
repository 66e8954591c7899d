"""Registry entries and the identity-aware map that stores them."""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass
from typing import Any

from svcreg.runtime.identity import IdentityPolicy
from svcreg.runtime.protocols import ServiceFactory


@dataclass(frozen=True, slots=True)
class Instance:
    """A resolved service. ``value`` is None after a rejected factory result."""

    value: Any


@dataclass(frozen=True, slots=True)
class Factory:
    """A deferred service, created on first lookup."""

    callback: ServiceFactory


ServiceEntry = Instance | Factory


class _Key:
    __slots__ = ("identifier", "_policy", "_hash")

    def __init__(self, identifier: Any, policy: IdentityPolicy) -> None:
        self.identifier = identifier
        self._policy = policy
        self._hash = policy.hash(identifier)

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _Key):
            return NotImplemented
        return self._policy.equals(self.identifier, other.identifier)


class IdentifierMap(MutableMapping[Any, ServiceEntry]):
    """Mapping from service identifier to entry, keyed through a policy.

    Keys are compared with ``policy.equals`` and bucketed with
    ``policy.hash``; iteration yields the identifiers as first inserted.
    Overwriting an equivalent key keeps the original identifier.
    """

    def __init__(self, policy: IdentityPolicy) -> None:
        self.policy = policy
        self._data: dict[_Key, ServiceEntry] = {}

    def _key(self, identifier: Any) -> _Key:
        return _Key(identifier, self.policy)

    def __getitem__(self, identifier: Any) -> ServiceEntry:
        return self._data[self._key(identifier)]

    def __setitem__(self, identifier: Any, entry: ServiceEntry) -> None:
        self._data[self._key(identifier)] = entry

    def __delitem__(self, identifier: Any) -> None:
        del self._data[self._key(identifier)]

    def __contains__(self, identifier: object) -> bool:
        return self._key(identifier) in self._data

    def __iter__(self) -> Iterator[Any]:
        return (key.identifier for key in self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        names = [self.policy.describe(i) for i in self]
        return f"IdentifierMap(policy={self.policy.name!r}, keys={names})"
