"""Pluggable equality for service identifiers.

A container never compares identifiers itself. It hands them to an
``IdentityPolicy``, which decides equality, hashing and whether an object
is an acceptable instance of the service an identifier names.

Two policies ship:

- ``ReferenceIdentity``: plain ``==`` / ``hash``. Two copies of the same
  class loaded by different loaders are different services.
- ``TypeEquivalence`` (default): module-level classes with the same
  ``__module__`` and ``__qualname__`` are the same service, which keeps
  lookups working across ``importlib.reload`` and plugins that load their
  own copy of a shared interface module.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

log = logging.getLogger(__name__)

FOREIGN_MARKER = "__foreign_service__"


class IdentityPolicy(ABC):
    """Equality / hash strategy over service identifiers."""

    name: str = "abstract"

    @abstractmethod
    def equals(self, a: Any, b: Any) -> bool: ...

    @abstractmethod
    def hash(self, identifier: Any) -> int: ...

    def is_instance(self, identifier: Any, obj: Any) -> bool:
        """Return True if ``obj`` may be stored or served under ``identifier``.

        Non-class identifiers are opaque tokens and accept any object.
        Protocols that are not ``@runtime_checkable`` cannot be verified
        and are accepted as well.
        """
        if not isinstance(identifier, type):
            return True
        try:
            return isinstance(obj, identifier)
        except TypeError:
            log.debug(
                "identity.unverifiable identifier=%s", self.describe(identifier)
            )
            return True

    def is_foreign(self, obj: Any) -> bool:
        """Opaque foreign proxies always pass the instance check."""
        return bool(getattr(type(obj), FOREIGN_MARKER, False))

    def accepts(self, identifier: Any, obj: Any) -> bool:
        return self.is_foreign(obj) or self.is_instance(identifier, obj)

    def describe(self, identifier: Any) -> str:
        if isinstance(identifier, type):
            return f"{identifier.__module__}.{identifier.__qualname__}"
        return repr(identifier)


class ReferenceIdentity(IdentityPolicy):
    name = "reference"

    def equals(self, a: Any, b: Any) -> bool:
        return a is b or a == b

    def hash(self, identifier: Any) -> int:
        return hash(identifier)


class TypeEquivalence(IdentityPolicy):
    name = "type-equivalence"

    @staticmethod
    def _full_name(identifier: Any) -> tuple[str, str] | None:
        if not isinstance(identifier, type):
            return None
        qualname = identifier.__qualname__
        if "<locals>" in qualname:
            return None
        return identifier.__module__, qualname

    def equals(self, a: Any, b: Any) -> bool:
        if a is b:
            return True
        name_a = self._full_name(a)
        if name_a is not None:
            return name_a == self._full_name(b)
        if self._full_name(b) is not None:
            return False
        return a == b

    def hash(self, identifier: Any) -> int:
        full_name = self._full_name(identifier)
        if full_name is None:
            return hash(identifier)
        return hash(full_name)

    def is_instance(self, identifier: Any, obj: Any) -> bool:
        if super().is_instance(identifier, obj):
            return True
        return any(self.equals(base, identifier) for base in type(obj).__mro__)


_POLICIES: dict[str, type[IdentityPolicy]] = {
    ReferenceIdentity.name: ReferenceIdentity,
    TypeEquivalence.name: TypeEquivalence,
}

DEFAULT_POLICY = TypeEquivalence.name


def build_policy(name: str = DEFAULT_POLICY) -> IdentityPolicy:
    """Instantiate an identity policy by its registered name.

    Raises KeyError for unknown names.
    """
    try:
        policy_cls = _POLICIES[name]
    except KeyError:
        raise KeyError(
            f"Identity policy '{name}' not registered. "
            f"Available: {sorted(_POLICIES)}"
        ) from None
    return policy_cls()


def available_policies() -> list[str]:
    return sorted(_POLICIES)
