from __future__ import annotations

from collections.abc import Iterable
from typing import Any


def describe(tp: Any) -> str:
    """Render a type as ``module.QualName`` for diagnostics."""
    if not isinstance(tp, type):
        return repr(tp)
    qualname = tp.__qualname__
    module = tp.__module__
    if not module or module == "builtins":
        return qualname
    return f"{module}.{qualname}"


class ContainerError(RuntimeError):
    """Base class for registration and resolution policy violations.

    Catch this type to handle any container failure without matching each
    concrete subclass. The container stays usable after any of these.
    """


class AlreadyRegisteredError(ContainerError, KeyError):
    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"Container already contains '{describe(key)}' type as a key.")

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0])


class NotRegisteredError(ContainerError, KeyError):
    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"Container does not contain '{describe(key)}' type as a key.")

    def __str__(self) -> str:
        return str(self.args[0])


class IncompatibleTypeError(ContainerError, TypeError):
    """Raised when an implementation or instance cannot stand in for its key."""


class AmbiguousConstructorError(ContainerError):
    def __init__(self, target: type) -> None:
        self.target = target
        super().__init__(
            f"Ambiguous usage of 'inject' on constructors of type '{describe(target)}'. "
            "Only one constructor can be marked with 'inject'."
        )


class NoInjectableConstructorError(ContainerError):
    def __init__(self, target: type) -> None:
        self.target = target
        super().__init__(
            f"Type '{describe(target)}' does not have either a parameterless constructor "
            "or a constructor marked with 'inject'."
        )


class ResolutionError(ContainerError):
    """Batch failure listing every dependency that could not be satisfied.

    ``stage`` is ``"constructor"`` or ``"member"``; ``missing`` keeps the
    declaration order of the offending injection points.
    """

    CONSTRUCTOR = "constructor"
    MEMBER = "member"

    def __init__(self, target: type, stage: str, missing: Iterable[Any]) -> None:
        self.target = target
        self.stage = stage
        self.missing = tuple(missing)
        names = ",".join(describe(tp) for tp in self.missing)
        if stage == self.CONSTRUCTOR:
            msg = (
                f"The types ({names}) which are the parameters of constructor of type "
                f"'{describe(target)}' are not registered in the container or not passed "
                "as unknown instances."
            )
        else:
            msg = (
                f"The property types ({names}) of type '{describe(target)}' are not registered "
                "in the container or not passed as unknown instances."
            )
        super().__init__(msg)


class ProtectedKeyError(ContainerError):
    def __init__(self, key: Any, *, instance: bool = False) -> None:
        self.key = key
        if instance:
            msg = f"The instance of key type '{describe(key)}' cannot be removed from container."
        else:
            msg = f"The key type '{describe(key)}' cannot be removed from container."
        super().__init__(msg)


class NoCachedInstanceError(ContainerError):
    def __init__(self, key: Any) -> None:
        self.key = key
        super().__init__(f"Container does not contain an instance of '{describe(key)}' type.")
