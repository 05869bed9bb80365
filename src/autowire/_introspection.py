"""Parameter introspection for class constructors and callables.

The container never looks at signatures directly; it asks this module for an
ordered list of `ParameterDescriptor` objects and resolves those.
"""

from __future__ import annotations

import builtins
import inspect
import logging
import types
import typing
from dataclasses import dataclass
from typing import Any, ForwardRef, Protocol, Union, cast, get_args, get_origin, get_type_hints

from ._errors import ContainerError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParameterDescriptor:
    name: str
    position: int
    kind: inspect._ParameterKind
    # dependency class, identifier string (unresolved forward reference) or None when untyped
    annotation: Any = None
    default: Any = inspect.Parameter.empty

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty

    @property
    def typed(self) -> bool:
        return self.annotation is not None


@dataclass(frozen=True)
class Parameters:
    """Ordered parameter descriptors, without the variadic ones."""

    descriptors: tuple[ParameterDescriptor, ...] = ()
    var_positional: bool = False
    var_keyword: bool = False


def describe_class(cls: type) -> Parameters:
    source = _constructor_of(cls)
    if source is None:
        return Parameters()

    try:
        sig = inspect.signature(cls)
    except (TypeError, ValueError):
        # builtin or extension constructors expose no signature; call them bare
        return Parameters()

    return _describe(sig, _get_type_hints(source, cls.__qualname__))


def describe_callable(func: Any) -> Parameters:
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError) as e:
        msg = f"Cannot introspect parameters of {func!r}: {e}"
        raise ContainerError(msg) from e

    if inspect.isfunction(func) or inspect.ismethod(func):
        source = func
    else:
        source = getattr(type(func), "__call__", func)

    return _describe(sig, _get_type_hints(source, getattr(func, "__qualname__", repr(func))))


def dependency_type(annotation: Any) -> Any:
    """Return what a parameter annotation asks the container for, or None.

    Classes outside ``builtins`` are dependencies. ``Optional[X]`` and ``X | None``
    unwrap to ``X``. Unresolved forward references are kept as identifier strings.
    Builtins, generics and special forms mean "untyped".
    """
    if annotation is inspect.Parameter.empty:
        return None

    if isinstance(annotation, ForwardRef):
        annotation = annotation.__forward_arg__

    if isinstance(annotation, str):
        return None if hasattr(builtins, annotation) else annotation

    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        members = [a for a in get_args(annotation) if a is not type(None)]
        if len(members) != 1:
            return None
        return dependency_type(members[0])

    if origin is not None or annotation is Any:
        return None

    if inspect.isclass(annotation) and annotation.__module__ != "builtins":
        return annotation

    return None


def is_constructible(cls: type) -> bool:
    return not (inspect.isabstract(cls) or is_protocol(cls))


def protocol_members(proto: type) -> list[str]:
    """Public attributes and methods a Protocol declares."""
    try:
        hints = get_type_hints(proto)
    except (NameError, TypeError):
        hints = {}

    names = [name for name in hints if not name.startswith("_")]
    for klass in proto.__mro__:
        if klass is Protocol or klass is object or not is_protocol(klass):
            continue
        for name, member in vars(klass).items():
            if name.startswith("_") or name in names:
                continue
            if inspect.isfunction(member) or isinstance(member, (staticmethod, classmethod, property)):
                names.append(name)
    return names


def _describe(sig: inspect.Signature, hints: dict[str, Any]) -> Parameters:
    descriptors = []
    var_positional = var_keyword = False

    for p in sig.parameters.values():
        if p.kind is p.VAR_POSITIONAL:
            var_positional = True
            continue
        if p.kind is p.VAR_KEYWORD:
            var_keyword = True
            continue

        annotation = hints.get(p.name, p.annotation)
        descriptors.append(
            ParameterDescriptor(
                name=p.name,
                position=len(descriptors),
                kind=p.kind,
                annotation=dependency_type(annotation),
                default=p.default,
            )
        )

    return Parameters(tuple(descriptors), var_positional, var_keyword)


def _constructor_of(cls: type) -> Any:
    for name in ("__init__", "__new__"):
        method = getattr(cls, name)
        if method is not getattr(object, name):
            return method
    return None


def _get_type_hints(source: Any, label: str) -> dict[str, Any]:
    try:
        hints = get_type_hints(source)
    except (TypeError, AttributeError):
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s type hints", exc.name, label)
        hints = {}

    return hints


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def is_protocol(tp: Any) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def is_protocol(tp: Any) -> bool:
        """Detect whether 'tp' is a typing.Protocol class itself, not a nominal implementation."""
        return (
            inspect.isclass(tp)
            and issubclass(tp, cast("type", Protocol))
            and bool(getattr(tp, "_is_protocol", False))
        )
