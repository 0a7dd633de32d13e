from __future__ import annotations

import inspect
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from ._assembler import Assembler
from ._assignability import is_assignable, union_members, validate_impl, validate_instance
from ._errors import (
    AlreadyRegisteredError,
    NoCachedInstanceError,
    NotRegisteredError,
    ProtectedKeyError,
    describe,
)
from ._resolver import AdHocPool, Resolver


if TYPE_CHECKING:
    from types import TracebackType


logger = logging.getLogger(__name__)

T = TypeVar("T")


class Lifetime(Enum):
    PER_CALL = "per_call"
    PER_CONTAINER = "per_container"


@dataclass(frozen=True)
class Registration:
    key: type
    impl: type
    lifetime: Lifetime


@dataclass(frozen=True)
class CachedInstance:
    obj: object
    type: type = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", type(self.obj))


class ReadOnlyContainer(ABC):
    """Resolution surface of a container.

    Registered as a key of every container, so classes may depend on it.
    """

    @abstractmethod
    def get(self, key: type[T], *ad_hoc: object) -> T: ...

    @abstractmethod
    def create_instance(self, cls: type[T], *ad_hoc: object) -> T: ...

    @abstractmethod
    def contains(self, key: type) -> bool: ...

    @abstractmethod
    def contains_instance(self, key: type) -> bool: ...

    @property
    @abstractmethod
    def all(self) -> list[type]: ...

    @property
    @abstractmethod
    def all_instances(self) -> list[object]: ...

    @property
    @abstractmethod
    def sync_root(self) -> Any: ...

    @abstractmethod
    def dispose(self) -> None: ...


class MutableContainer(ReadOnlyContainer):
    """Full container surface: resolution plus registration and removal."""

    @abstractmethod
    def register_implementation(self, key: type, impl: type, lifetime: Lifetime = Lifetime.PER_CALL) -> None: ...

    @abstractmethod
    def register_instance(self, key: type, instance: object) -> None: ...

    @abstractmethod
    def remove(self, key: type) -> None: ...

    @abstractmethod
    def remove_instance(self, key: type) -> None: ...

    @abstractmethod
    def clear_all(self) -> None: ...

    @abstractmethod
    def clear_all_instances(self) -> None: ...


_SELF_KEYS: tuple[type, ...] = (ReadOnlyContainer, MutableContainer)


class Container(MutableContainer):
    """Thread-safe keyed registry with constructor and member injection.

    - register an implementation type or a ready instance per key type
    - lifetimes: per call / per container
    - ad-hoc values satisfy dependencies the registry does not know
    - one reentrant lock serializes every operation, nested resolution included

    Example:
      container = Container()
      container.register_implementation(Repo, SqlRepo, Lifetime.PER_CONTAINER)
      service = container.create_instance(Service, Settings(dsn="..."))

    """

    def __init__(self) -> None:
        self._registrations: dict[type, Registration] = {}
        self._instances: dict[type, CachedInstance] = {}
        self._lock = threading.RLock()
        self._assembler = Assembler(Resolver(self))

        self._register_self()

    # Registration

    def register_implementation(self, key: type, impl: type, lifetime: Lifetime = Lifetime.PER_CALL) -> None:
        """Register ``impl`` as the type built for ``key``.

        Example:
          container.register_implementation(IRepo, SqlRepo)
          container.register_implementation(IClock, SystemClock, Lifetime.PER_CONTAINER)

        """
        _check_key(key, "key")
        _check_key(impl, "impl")
        if not isinstance(lifetime, Lifetime):
            msg = f"Argument 'lifetime' must be a Lifetime, got {lifetime!r}."
            raise ValueError(msg)

        validate_impl(key, impl)

        with self._lock:
            if key in self._registrations:
                raise AlreadyRegisteredError(key)
            self._registrations[key] = Registration(key=key, impl=impl, lifetime=lifetime)

        logger.debug("Registered %s -> %s (%s)", describe(key), describe(impl), lifetime.value)

    def register_instance(self, key: type, instance: object) -> None:
        """Register a pre-built instance (always per container)."""
        _check_key(key, "key")
        if instance is None:
            msg = "Argument 'instance' cannot be None."
            raise ValueError(msg)

        validate_instance(key, instance)

        with self._lock:
            if key in self._registrations:
                raise AlreadyRegisteredError(key)
            self._registrations[key] = Registration(key=key, impl=type(instance), lifetime=Lifetime.PER_CONTAINER)
            self._instances[key] = CachedInstance(instance)

        logger.debug("Registered instance of %s for %s", describe(type(instance)), describe(key))

    # Resolution

    def get(self, key: type[T], *ad_hoc: object) -> T:
        """Return the instance registered for ``key``.

        Cached instances are returned as is. Otherwise the implementation is
        built, its members are injected, and the result is cached when the
        registration lives per container. ``ad_hoc`` values satisfy
        dependencies the registry does not hold, matched by runtime type.
        """
        _check_key(key, "key")
        pool = AdHocPool(ad_hoc)

        with self._lock:
            registration = self._registrations.get(key)
            if registration is None:
                raise NotRegisteredError(key)

            cached = self._instances.get(key)
            if cached is not None:
                return cached.obj  # type: ignore[return-value]

            instance = self._assembler.assemble(registration.impl, pool)

            if registration.lifetime is Lifetime.PER_CONTAINER:
                self._instances[key] = CachedInstance(instance)
                logger.debug("Cached %s for %s", describe(type(instance)), describe(key))

            return instance

    def create_instance(self, cls: type[T], *ad_hoc: object) -> T:
        """Build a transient, injected instance of ``cls``; never registered or cached."""
        _check_key(cls, "cls")
        pool = AdHocPool(ad_hoc)

        with self._lock:
            return self._assembler.assemble(cls, pool)

    def contains(self, key: type) -> bool:
        if key is None:
            msg = "Argument 'key' cannot be None."
            raise ValueError(msg)

        with self._lock:
            return key in self._registrations

    def __contains__(self, key: object) -> bool:
        return self.contains(key)  # type: ignore[arg-type]

    def contains_instance(self, key: type) -> bool:
        _check_key(key, "key")

        with self._lock:
            if key not in self._registrations:
                raise NotRegisteredError(key)
            return key in self._instances

    @property
    def all(self) -> list[type]:
        with self._lock:
            return list(self._registrations)

    @property
    def all_instances(self) -> list[object]:
        with self._lock:
            distinct: dict[int, object] = {}
            for cached in self._instances.values():
                distinct.setdefault(id(cached.obj), cached.obj)
            return list(distinct.values())

    @property
    def sync_root(self) -> Any:
        """The container's reentrant lock, for callers coordinating with its mutations."""
        return self._lock

    def find_key(self, tp: Any) -> type | None:
        """Return the registered key that satisfies a dependency on ``tp``.

        An exact key wins; otherwise the first registration whose key or
        implementation type is assignable to ``tp``. Union members other than
        ``None`` are tried in declaration order, and a parameterized generic
        such as ``list[str]`` matches through its origin class.
        """
        with self._lock:
            for member in union_members(tp):
                if member in self._registrations:
                    return member
                for key, registration in self._registrations.items():
                    if is_assignable(member, key) or is_assignable(member, registration.impl):
                        return key
            return None

    # Removal

    def remove(self, key: type) -> None:
        _check_key(key, "key")
        if key in _SELF_KEYS:
            raise ProtectedKeyError(key)

        with self._lock:
            if key not in self._registrations:
                raise NotRegisteredError(key)
            self._instances.pop(key, None)
            del self._registrations[key]

        logger.debug("Removed %s", describe(key))

    def remove_instance(self, key: type) -> None:
        _check_key(key, "key")
        if key in _SELF_KEYS:
            raise ProtectedKeyError(key, instance=True)

        with self._lock:
            if key not in self._registrations:
                raise NotRegisteredError(key)
            if key not in self._instances:
                raise NoCachedInstanceError(key)
            del self._instances[key]

        logger.debug("Removed cached instance of %s", describe(key))

    def clear_all(self) -> None:
        with self._lock:
            self._registrations.clear()
            self._instances.clear()
            self._register_self()

        logger.debug("Cleared all registrations")

    def clear_all_instances(self) -> None:
        with self._lock:
            self._instances.clear()
            for key in _SELF_KEYS:
                # gone after dispose()
                if key in self._registrations:
                    self._instances[key] = CachedInstance(self)

        logger.debug("Cleared all cached instances")

    # Lifecycle

    def dispose(self) -> None:
        """Forget every registration and cached instance; held objects are not closed."""
        with self._lock:
            self._registrations.clear()
            self._instances.clear()

        logger.debug("Disposed container")

    def __enter__(self) -> Container:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    def _register_self(self) -> None:
        for key in _SELF_KEYS:
            self.register_instance(key, self)


def _check_key(tp: Any, name: str) -> None:
    if tp is None:
        msg = f"Argument '{name}' cannot be None."
        raise ValueError(msg)
    if not inspect.isclass(tp):
        msg = f"Argument '{name}' must be a type, got {tp!r}."
        raise ValueError(msg)
