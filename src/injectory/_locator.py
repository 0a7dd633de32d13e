"""Discovery of injection points on a class.

Constructors are ``__init__`` or ``classmethod`` alternate constructors marked
with ``@inject``. Members are class attributes annotated ``Injected[T]`` and
properties whose setter is marked with ``@inject``. Leading underscores do
not hide an injection point.
"""

from __future__ import annotations

import builtins
import inspect
import logging
import sys
from typing import TYPE_CHECKING, Any, NamedTuple, get_type_hints

from ._markers import is_injected_annotation, is_marked, strip_injected_annotation


if TYPE_CHECKING:
    from collections.abc import Callable


logger = logging.getLogger(__name__)

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


class Unannotated(NamedTuple):
    """Stands in for the type of a parameter declared without annotation."""

    name: str

    def __repr__(self) -> str:
        return f"<unannotated '{self.name}'>"


class InjectionPoint(NamedTuple):
    name: str
    annotation: Any
    default: Any = inspect.Parameter.empty
    kind: Any = inspect.Parameter.POSITIONAL_OR_KEYWORD

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty


class InjectableConstructor(NamedTuple):
    owner: type
    name: str
    func: Callable[..., Any]

    def parameters(self) -> list[InjectionPoint]:
        """Injection points of the constructor, skipping ``self``/``cls`` and variadics."""
        sig = inspect.signature(self.func)
        hints = _get_type_hints(self.func, self.owner)
        points: list[InjectionPoint] = []
        for index, (name, p) in enumerate(sig.parameters.items()):
            if index == 0 or p.kind in _VARIADIC:
                continue
            annotation = hints.get(name, inspect.Parameter.empty)
            if annotation is inspect.Parameter.empty:
                annotation = Unannotated(name)
            else:
                annotation = strip_injected_annotation(annotation)
            points.append(InjectionPoint(name, annotation, p.default, p.kind))
        return points

    def bind(self, cls: type) -> Callable[..., Any]:
        if self.name == "__init__":
            return cls
        return getattr(cls, self.name)


def locate_constructors(cls: type) -> list[InjectableConstructor]:
    """Marked constructors of ``cls`` as seen through its MRO, most derived first."""
    seen: set[str] = set()
    found: list[InjectableConstructor] = []
    for klass in cls.__mro__:
        if klass is object:
            continue
        for name, attr in vars(klass).items():
            if name in seen:
                continue
            seen.add(name)
            if name == "__init__" and inspect.isfunction(attr):
                func = attr
            elif isinstance(attr, classmethod):
                func = attr.__func__
            elif isinstance(attr, staticmethod) and is_marked(attr.__func__):
                msg = f"'inject' cannot mark staticmethod '{klass.__qualname__}.{name}'; use a classmethod constructor"
                raise TypeError(msg)
            else:
                continue
            if is_marked(func):
                found.append(InjectableConstructor(klass, name, func))
    return found


def locate_members(cls: type) -> list[InjectionPoint]:
    """Marked settable members of ``cls``: annotated attributes, then properties."""
    hints = _get_type_hints(cls, cls)
    members: list[InjectionPoint] = []
    for name, annotation in hints.items():
        if not is_injected_annotation(annotation):
            continue
        static = inspect.getattr_static(cls, name, None)
        if isinstance(static, property) and static.fset is None:
            continue
        members.append(InjectionPoint(name, strip_injected_annotation(annotation)))

    seen = {m.name for m in members}
    for klass in reversed(cls.__mro__):
        for name in vars(klass):
            if name in seen:
                continue
            prop = inspect.getattr_static(cls, name, None)
            if not isinstance(prop, property) or not is_marked(prop.fset):
                continue
            seen.add(name)
            members.append(InjectionPoint(name, _property_annotation(cls, name, prop)))
    return members


def has_parameterless_constructor(cls: type) -> bool:
    try:
        sig = inspect.signature(cls)
    except (TypeError, ValueError):
        # builtins without introspectable signatures
        return True
    return all(p.kind in _VARIADIC or p.default is not inspect.Parameter.empty for p in sig.parameters.values())


def _property_annotation(cls: type, name: str, prop: property) -> Any:
    setter_hints = _get_type_hints(prop.fset, cls)
    params = list(inspect.signature(prop.fset).parameters)[1:]
    if params and params[0] in setter_hints:
        return strip_injected_annotation(setter_hints[params[0]])
    if prop.fget is not None:
        getter_hints = _get_type_hints(prop.fget, cls)
        if "return" in getter_hints:
            return strip_injected_annotation(getter_hints["return"])
    return Unannotated(name)


def _get_type_hints(obj: Any, owner: type) -> dict[str, Any]:
    try:
        return get_type_hints(obj, include_extras=True)
    except TypeError:
        return {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s (%s) type hints", exc.name, owner.__name__, owner.__qualname__)

    return _get_type_hints_by_name(obj)


def _get_type_hints_by_name(obj: Any) -> dict[str, Any]:
    """Evaluate annotations one at a time so a single unknown name spoils only its own entry.

    Names that cannot be found evaluate to an :class:`UnresolvedName` class,
    which keeps ``Injected[...]`` and ``X | None`` intact around it.
    """
    hints: dict[str, Any] = {}
    for annotations, globalns, localns in _annotation_scopes(obj):
        namespace = _UnresolvedNamespace(globalns, localns, vars(builtins))
        for name, value in annotations.items():
            if value is None:
                hints[name] = type(None)
            elif isinstance(value, str):
                try:
                    hints[name] = eval(value, globalns, namespace)  # noqa: S307
                except (SyntaxError, TypeError, AttributeError):
                    hints[name] = Unannotated(name)
            else:
                hints[name] = value
    return hints


def _annotation_scopes(obj: Any) -> list[tuple[dict[str, Any], dict[str, Any], dict[str, Any]]]:
    if isinstance(obj, type):
        return [
            (_raw_annotations(klass), vars(sys.modules.get(klass.__module__, builtins)), dict(vars(klass)))
            for klass in reversed(obj.__mro__)
        ]
    func = inspect.unwrap(obj)
    return [(_raw_annotations(func), getattr(func, "__globals__", {}), {})]


def _raw_annotations(obj: Any) -> dict[str, Any]:
    try:
        return dict(inspect.get_annotations(obj))
    except NameError:
        # deferred annotations (3.14+) that reference undefined names
        import annotationlib

        return dict(annotationlib.get_annotations(obj, format=annotationlib.Format.STRING))


class UnresolvedName(type):
    """Metaclass of the placeholders standing in for names an annotation could not find.

    A placeholder is never a key, a subclass of one, or the type of an ad-hoc
    value, so a dependency on it only resolves through a default.
    """

    def __repr__(cls) -> str:
        return cls.__qualname__


class _UnresolvedNamespace(dict):
    """``eval`` locals searching each namespace in order, then inventing a placeholder."""

    def __init__(self, *namespaces: dict[str, Any]) -> None:
        super().__init__()
        self._namespaces = namespaces

    def __missing__(self, key: str) -> Any:
        for namespace in self._namespaces:
            if key in namespace:
                return namespace[key]
        attrs = {"__module__": "builtins", "__qualname__": f"<unresolved '{key}'>"}
        placeholder = self[key] = UnresolvedName(key, (), attrs)
        return placeholder
