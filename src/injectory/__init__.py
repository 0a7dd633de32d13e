"""Keyed dependency-injection registry.

This package maps abstract key types to implementation types or pre-built
instances and builds fully injected objects on request: one marked
constructor per class plus any number of marked settable members, resolved
from the registry or from ad-hoc values passed with the call.

Exports:
- `Container`: Thread-safe registry; also registered under its own interfaces.
- `ReadOnlyContainer` / `MutableContainer`: The two self-reference key types.
- `Lifetime`: `PER_CALL` builds on every request, `PER_CONTAINER` caches.
- `inject` / `Injected`: Markers for constructors, property setters and attributes.
- `ContainerError` and its subclasses: Registration and resolution failures.
"""

from ._container import Container, Lifetime, MutableContainer, ReadOnlyContainer
from ._errors import (
    AlreadyRegisteredError,
    AmbiguousConstructorError,
    ContainerError,
    IncompatibleTypeError,
    NoCachedInstanceError,
    NoInjectableConstructorError,
    NotRegisteredError,
    ProtectedKeyError,
    ResolutionError,
)
from ._markers import Injected, InjectMarker, inject


__all__ = [
    "AlreadyRegisteredError",
    "AmbiguousConstructorError",
    "Container",
    "ContainerError",
    "IncompatibleTypeError",
    "InjectMarker",
    "Injected",
    "Lifetime",
    "MutableContainer",
    "NoCachedInstanceError",
    "NoInjectableConstructorError",
    "NotRegisteredError",
    "ProtectedKeyError",
    "ReadOnlyContainer",
    "ResolutionError",
    "inject",
]
