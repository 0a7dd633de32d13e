from __future__ import annotations

import inspect
import types
import typing
from typing import Any, Protocol, Union, cast, get_args, get_origin, get_type_hints

from ._errors import IncompatibleTypeError, describe


_UNION_ORIGINS = (Union, types.UnionType)

if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def is_protocol(tp: Any) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def is_protocol(tp: Any) -> bool:
        """Detect whether 'tp' is a typing.Protocol class (safe)."""
        # concrete subclasses of a protocol carry _is_protocol = False
        return (
            inspect.isclass(tp)
            and tp is not Protocol
            and getattr(tp, "_is_protocol", False) is True
            and issubclass(tp, cast("type", Protocol))
        )


def is_runtime_checkable_protocol(tp: Any) -> bool:
    if not is_protocol(tp):
        return False

    try:
        isinstance(None, tp)
    except TypeError:
        return False
    else:
        return True


def union_members(tp: Any) -> tuple[Any, ...]:
    """Members of a ``Union``/``X | Y`` other than ``None``; any other type alone."""
    if get_origin(tp) not in _UNION_ORIGINS:
        return (tp,)
    return tuple(arg for arg in get_args(tp) if arg is not type(None))


def is_assignable(target: Any, candidate: type) -> bool:
    """Return True when values of type ``candidate`` can stand in for ``target``.

    Never raises; protocol targets fall back to structural conformance. A
    union accepts a candidate assignable to any of its members and a
    parameterized generic is matched through its origin class.
    """
    if target is candidate:
        return True
    if get_origin(target) in _UNION_ORIGINS:
        return any(is_assignable(member, candidate) for member in union_members(target))
    origin = get_origin(target)
    if inspect.isclass(origin):
        # type arguments are not checked at runtime
        target = origin
    if not inspect.isclass(target) or not inspect.isclass(candidate):
        return False
    if is_protocol(target):
        try:
            validate_protocol_impl(target, candidate)
        except IncompatibleTypeError:
            return False
        return True
    try:
        return issubclass(candidate, target)
    except TypeError:
        return False


def validate_impl(key: type, impl: type) -> None:
    """Validate that 'impl' implements 'key'.

    - For normal classes/ABCs: require issubclass(impl, key).
    - For Protocols: nominal via MRO, otherwise structural conformance.
    """
    if not is_protocol(key):
        if not issubclass(impl, key):
            msg = f"Type '{describe(impl)}' must be derived from type '{describe(key)}'."
            raise IncompatibleTypeError(msg)
        return

    validate_protocol_impl(key, impl)


def validate_instance(key: type, instance: object) -> None:
    if is_protocol(key):
        if is_runtime_checkable_protocol(key) and not isinstance(instance, key):
            msg = f"Instance of '{describe(type(instance))}' does not implement runtime protocol '{describe(key)}'."
            raise IncompatibleTypeError(msg)
        validate_protocol_impl(key, type(instance))
        return

    if not isinstance(instance, key):
        msg = f"Type '{describe(type(instance))}' must be derived from type '{describe(key)}'."
        raise IncompatibleTypeError(msg)


def validate_protocol_impl(proto_cls: type, impl: type) -> None:
    # Try nominal conformance without issubclass
    if proto_cls in getattr(impl, "__mro__", ()):
        return

    _validate_protocol_structural_conformance(proto_cls, impl)


def _positional_arity(params: list[inspect.Parameter]) -> int:
    return sum(
        1
        for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        and p.default is inspect.Parameter.empty
    )


def _validate_protocol_structural_conformance(proto_cls: type, impl: type) -> None:  # noqa: C901
    """Best-effort structural conformance: presence + basic callable arity + return type checks."""
    missing: list[str] = []
    signature_mismatches: list[str] = []

    try:
        proto_hints = get_type_hints(proto_cls, include_extras=True)
    except (TypeError, NameError):
        proto_hints = {}

    for name in proto_hints:
        if name.startswith("_"):
            continue
        if not hasattr(impl, name):
            missing.append(name)

    for name, proto_attr in proto_cls.__dict__.items():
        if name.startswith("_") or not inspect.isfunction(proto_attr):
            continue

        if not hasattr(impl, name):
            missing.append(name)
            continue

        impl_attr = getattr(impl, name)
        if not callable(impl_attr):
            signature_mismatches.append(f"{name}: not callable on {impl.__name__}")
            continue

        try:
            proto_sig = inspect.signature(proto_attr)
            impl_sig = inspect.signature(impl_attr)
        except (TypeError, ValueError) as e:
            signature_mismatches.append(f"{name}: unable to compare signatures ({e})")
            continue

        proto_params = [p for p in proto_sig.parameters.values() if p.name != "self"]
        impl_params = [p for p in impl_sig.parameters.values() if p.name != "self"]

        if _positional_arity(impl_params) < _positional_arity(proto_params):
            signature_mismatches.append(
                f"{name}: impl has fewer required positional params "
                f"({_positional_arity(impl_params)}) than protocol "
                f"({_positional_arity(proto_params)})"
            )

        proto_ret = proto_sig.return_annotation
        impl_ret = impl_sig.return_annotation
        if (
            proto_ret is not inspect.Signature.empty
            and impl_ret is not inspect.Signature.empty
            and proto_ret is not Any
            and impl_ret is not Any
            and not _is_return_type_compatible(impl_ret, proto_ret)
        ):
            signature_mismatches.append(
                f"{name}: return type {impl_ret!r} is not compatible with protocol return type {proto_ret!r}"
            )

    if missing or signature_mismatches:
        msgs = []
        if missing:
            msgs.append(f"missing members: {', '.join(missing)}")
        if signature_mismatches:
            msgs.append(f"signature mismatches: {', '.join(signature_mismatches)}")

        msg = (
            f"Type '{describe(impl)}' does not structurally conform to protocol "
            f"'{describe(proto_cls)}': {'; '.join(msgs)}"
        )
        raise IncompatibleTypeError(msg)


def _is_return_type_compatible(impl_ret: object, proto_ret: object) -> bool:
    # Exact match
    if impl_ret == proto_ret:
        return True

    # Handle class-based covariance
    if isinstance(impl_ret, type) and isinstance(proto_ret, type):
        return issubclass(impl_ret, proto_ret)

    # Everything else (Union, Protocol, TypeVar, etc.) is a conservative failure
    return False
