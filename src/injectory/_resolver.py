from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from ._assignability import is_assignable
from ._errors import ResolutionError, describe


if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from ._locator import InjectionPoint


logger = logging.getLogger(__name__)


class Lookup(Protocol):
    """Registry capability the resolver draws dependencies from."""

    def find_key(self, tp: Any) -> Any | None: ...

    def get(self, key: Any) -> Any: ...


class AdHocPool:
    """Call-scoped values keyed by their runtime type.

    Holds at most one value per runtime type; a duplicate is a caller error
    raised before any resolution takes place.
    """

    def __init__(self, values: Iterable[object] = ()) -> None:
        self._values: dict[type, object] = {}
        for value in values:
            if value is None:
                msg = "Argument 'ad_hoc' cannot contain None."
                raise ValueError(msg)
            runtime_type = type(value)
            if runtime_type in self._values:
                msg = f"ad_hoc has more than one entry of the same type ('{describe(runtime_type)}')."
                raise ValueError(msg)
            self._values[runtime_type] = value

    def __len__(self) -> int:
        return len(self._values)

    def find(self, target: Any) -> tuple[bool, object]:
        """Return the first value whose runtime type is assignable to ``target``."""
        for runtime_type, value in self._values.items():
            if is_assignable(target, runtime_type):
                return True, value
        return False, None


class Resolver:
    """Resolve injection points from the registry first, then an ad-hoc pool.

    Every point is classified before anything is built, so a failure reports
    all unresolved types at once and leaves no half-built dependencies behind.
    """

    def __init__(self, lookup: Lookup) -> None:
        self._lookup = lookup

    def resolve(
        self,
        target: type,
        points: Sequence[InjectionPoint],
        pool: AdHocPool,
        stage: str,
    ) -> dict[str, Any]:
        plan: list[tuple[InjectionPoint, Any, Any]] = []
        missing: list[Any] = []

        for point in points:
            key = self._lookup.find_key(point.annotation)
            if key is not None:
                plan.append((point, key, None))
                continue

            found, value = pool.find(point.annotation)
            if found:
                plan.append((point, None, value))
                continue

            if point.has_default:
                plan.append((point, None, point.default))
                continue

            missing.append(point.annotation)

        if missing:
            logger.debug("Unresolved %s dependencies of %s: %s", stage, describe(target), missing)
            raise ResolutionError(target, stage, missing)

        return {point.name: (self._lookup.get(key) if key is not None else value) for point, key, value in plan}
