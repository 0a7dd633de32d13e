from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any, TypeVar, get_args, get_origin


if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")
F = TypeVar("F")

INJECT_ATTRIBUTE = "__injectory_inject__"


class InjectMarker:
    """Metadata placed in ``Annotated`` to flag a member for injection."""

    def __repr__(self) -> str:
        return "InjectMarker()"


Injected = Annotated[T, InjectMarker()]
"""Mark a class attribute for member injection.

``name: Injected[Repo]`` is ``Annotated[Repo, InjectMarker()]`` at runtime, so
type checkers still see ``Repo``.
"""


def inject(func: F) -> F:
    """Mark a constructor or a property setter as an injection point.

    Accepts ``__init__``, a ``classmethod`` used as an alternate constructor,
    or the setter function of a ``property``. A ``staticmethod`` has no class
    to construct and is rejected.

    Example:
      class Service:
          @inject
          def __init__(self, repo: Repo) -> None: ...

    """
    if isinstance(func, staticmethod):
        msg = f"'inject' cannot decorate a staticmethod, got {func!r}; use a classmethod constructor"
        raise TypeError(msg)
    target: Any = func.__func__ if isinstance(func, classmethod) else func
    if not callable(target):
        msg = f"'inject' can only decorate functions, got {func!r}"
        raise TypeError(msg)
    setattr(target, INJECT_ATTRIBUTE, True)
    return func


def is_marked(func: Callable[..., Any] | None) -> bool:
    return func is not None and getattr(func, INJECT_ATTRIBUTE, False) is True


def is_injected_annotation(annotation: Any) -> bool:
    """Return True when annotation is ``Annotated[..., InjectMarker()]``."""
    if get_origin(annotation) is not Annotated:
        return False
    return any(isinstance(item, InjectMarker) for item in annotation.__metadata__)


def strip_injected_annotation(annotation: Any) -> Any:
    """Return the plain dependency type behind an ``Injected[...]`` annotation."""
    if get_origin(annotation) is not Annotated:
        return annotation
    return get_args(annotation)[0]
