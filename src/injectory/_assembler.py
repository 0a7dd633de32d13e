from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any

from ._errors import (
    AmbiguousConstructorError,
    IncompatibleTypeError,
    NoInjectableConstructorError,
    ResolutionError,
    describe,
)
from ._locator import has_parameterless_constructor, locate_constructors, locate_members


if TYPE_CHECKING:
    from ._locator import InjectableConstructor, InjectionPoint
    from ._resolver import AdHocPool, Resolver


logger = logging.getLogger(__name__)


class Assembler:
    """Build an object through its injection constructor, then inject its members."""

    def __init__(self, resolver: Resolver) -> None:
        self._resolver = resolver

    def assemble(self, cls: type, pool: AdHocPool) -> Any:
        constructors = locate_constructors(cls)

        if len(constructors) > 1:
            raise AmbiguousConstructorError(cls)

        if constructors:
            instance = self._construct(cls, constructors[0], pool)
        else:
            if not has_parameterless_constructor(cls):
                raise NoInjectableConstructorError(cls)
            instance = cls()

        self.inject_members(instance, pool)
        return instance

    def inject_members(self, instance: object, pool: AdHocPool) -> None:
        runtime_type = type(instance)
        members = locate_members(runtime_type)
        if not members:
            return

        values = self._resolver.resolve(runtime_type, members, pool, ResolutionError.MEMBER)
        for member in members:
            setattr(instance, member.name, values[member.name])

    def _construct(self, cls: type, ctor: InjectableConstructor, pool: AdHocPool) -> Any:
        points = ctor.parameters()
        values = self._resolver.resolve(cls, points, pool, ResolutionError.CONSTRUCTOR)
        args, kwargs = _materialize_call(points, values)

        instance = ctor.bind(cls)(*args, **kwargs)
        if not isinstance(instance, cls):
            msg = (
                f"Constructor '{ctor.name}' of '{describe(cls)}' returned "
                f"'{describe(type(instance))}', which is not an instance of it."
            )
            raise IncompatibleTypeError(msg)

        logger.debug("Constructed %s via %s", describe(cls), ctor.name)
        return instance


def _materialize_call(points: list[InjectionPoint], values: dict[str, Any]) -> tuple[list[Any], dict[str, Any]]:
    args, kwargs = [], {}
    for point in points:
        if point.kind is inspect.Parameter.POSITIONAL_ONLY:
            args.append(values[point.name])
        else:
            kwargs[point.name] = values[point.name]
    return args, kwargs
