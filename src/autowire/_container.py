from __future__ import annotations

import dataclasses
import importlib
import inspect
import logging
import threading
import types
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar, overload

from ._arguments import CONSTRUCTOR, ArgumentStore, normalize
from ._errors import BindingError, CircularDependencyError, ContainerError, NotFoundError
from ._introspection import (
    ParameterDescriptor,
    Parameters,
    describe_callable,
    describe_class,
    is_constructible,
    is_protocol,
    protocol_members,
)


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from ._arguments import Overrides

    T = TypeVar("T")

    Token = type[T] | str
    Factory = Callable[["Container"], object]


_MISSING: Any = object()


class Lifetime(Enum):
    SINGLETON = "singleton"
    TRANSIENT = "transient"


@dataclass
class Registration:
    factory: Callable[[Container], object] | None
    target: Any  # alias identifier; equal to the bound token for self-bindings
    lifetime: Lifetime
    cached_instance: Any = _MISSING  # written once for singletons


class Container:
    """Autowiring DI container.

    - bind factories, aliases or pre-built instances to identifiers
    - resolve unbound classes by constructor injection from type annotations
    - record override arguments per identifier and method
    - lifetimes: transient / singleton
    - call functions and methods with injected parameters.
    """

    def __init__(self, *, autowire: bool = True) -> None:
        self._registrations: dict[Any, Registration] = {}
        self._arguments = ArgumentStore()
        self._resolving: list[Any] = []
        self._autowire = autowire
        self._lock = threading.RLock()

    def bind(self, token: Token[T], resolver: Factory | Token[Any] | None = None) -> None:
        """Register a transient resolver for a token.

        Example:
          container.bind(Mailer, SmtpMailer)
          container.bind("db", lambda c: connect(c.get("dsn")))
          container.bind(Clock)  # autowire Clock itself

        """
        self._register(token, resolver, Lifetime.TRANSIENT)

    def singleton(self, token: Token[T], resolver: Factory | Token[Any] | None = None) -> None:
        """Register a resolver that runs once, on first resolution, and is reused afterwards."""
        self._register(token, resolver, Lifetime.SINGLETON)

    def instance(self, token: Token[T], value: object) -> None:
        """Register a pre-built value (always singleton)."""
        if inspect.isclass(token):
            _validate_impl(token, type(value))

        with self._lock:
            self._registrations[token] = Registration(
                factory=None,
                target=None,
                lifetime=Lifetime.SINGLETON,
                cached_instance=value,
            )

    def has(self, token: Token[Any]) -> bool:
        with self._lock:
            return token in self._registrations

    def arg(self, token: Token[Any], values: Overrides) -> None:
        """Record constructor overrides for a token, merged with earlier ones."""
        with self._lock:
            self._arguments.record(token, CONSTRUCTOR, values)

    def args(self, token: Token[Any], per_method: Mapping[str, Overrides]) -> None:
        """Record overrides for several methods of a token, merged with earlier ones.

        Example:
          container.args(Report, {"__init__": {"title": "Q3"}, "render": {0: "pdf"}})

        """
        with self._lock:
            for method, values in per_method.items():
                self._arguments.record(token, method, values)

    def get_args(self, token: Token[Any], method: str = CONSTRUCTOR) -> dict[int | str, Any]:
        with self._lock:
            return self._arguments.lookup(token, method)

    @overload
    def get(self, token: type[T], args: Overrides | None = None) -> T: ...

    @overload
    def get(self, token: str, args: Overrides | None = None) -> Any: ...

    def get(self, token: Token[T], args: Overrides | None = None) -> Any:
        """Resolve the token to a value.

        - If a registration exists: use it (cached singleton, factory, alias).
        - Otherwise, if the token names a concrete class: autowire its constructor.
        `args` supplies constructor overrides by position or parameter name; they
        are ignored once a singleton has been memoized.
        """
        with self._lock, self._tracking(token):
            reg = self._registrations.get(token)
            if reg is None:
                return self._build(token, args)

            if reg.lifetime is Lifetime.SINGLETON and reg.cached_instance is not _MISSING:
                return reg.cached_instance

            value = self._produce(token, reg, args)

            if reg.lifetime is Lifetime.SINGLETON:
                reg.cached_instance = value

            return value

    @overload
    def make(self, token: type[T], factory: Factory | None = None, args: Overrides | None = None) -> T: ...

    @overload
    def make(self, token: str, factory: Factory | None = None, args: Overrides | None = None) -> Any: ...

    def make(self, token: Token[T], factory: Factory | None = None, args: Overrides | None = None) -> Any:
        """Construct the token afresh and keep the result as its singleton instance.

        A memoized instance is never returned here: the binding (or `factory`, which
        replaces it) is invoked again and its result cached for later `get` calls.
        """
        with self._lock, self._tracking(token):
            reg = self._registrations.get(token)

            if factory is not None:
                if not callable(factory):
                    msg = f"Factory for {_label(token)} must be callable, got {factory!r}"
                    raise BindingError(msg)
                value = factory(self)
                reg = Registration(factory=factory, target=None, lifetime=Lifetime.SINGLETON)
            elif reg is not None:
                value = self._produce(token, reg, args)
                reg = dataclasses.replace(reg, lifetime=Lifetime.SINGLETON)
            else:
                value = self._build(token, args)
                reg = Registration(factory=None, target=token, lifetime=Lifetime.SINGLETON)

            reg.cached_instance = value
            self._registrations[token] = reg
            return value

    def call(self, target: Any, args: Overrides | None = None) -> Any:
        """Invoke a callable, or a ``(subject, method_name)`` pair, with injected parameters.

        The subject may be an object, used as is, or an identifier resolved through
        the container. Static and class methods are called without instantiating.
        """
        with self._lock:
            func, owner, method = self._locate_callable(target)
            params = describe_callable(func)
            overrides = self._arguments.lookup(owner, method)
            overrides.update(normalize(args))
            positional, keywords = self._resolve_arguments(params, overrides, func)
            return func(*positional, **keywords)

    def _register(self, token: Any, resolver: Any, lifetime: Lifetime) -> None:
        if resolver is None:
            reg = Registration(factory=None, target=token, lifetime=lifetime)
        elif isinstance(resolver, str) or inspect.isclass(resolver):
            if inspect.isclass(token) and inspect.isclass(resolver):
                _validate_impl(token, resolver)
            reg = Registration(factory=None, target=resolver, lifetime=lifetime)
        elif callable(resolver):
            reg = Registration(factory=resolver, target=None, lifetime=lifetime)
        else:
            msg = f"Resolver for {_label(token)} must be a callable, a class or an identifier, got {resolver!r}"
            raise BindingError(msg)

        with self._lock:
            self._registrations[token] = reg
        logger.debug("Registered %s as %s (%s)", _label(token), _label(reg.factory or reg.target), lifetime.value)

    def _produce(self, token: Any, reg: Registration, args: Overrides | None) -> Any:
        if reg.factory is not None:
            return reg.factory(self)

        if reg.target is None:
            # pre-built instance; nothing to construct from
            return reg.cached_instance

        if reg.target == token:
            return self._build(token, args)

        forwarded = self._arguments.lookup(token)
        forwarded.update(normalize(args))
        return self.get(reg.target, forwarded or None)

    def _build(self, token: Any, args: Overrides | None) -> Any:
        cls = self._locate_class(token)

        overrides = {}
        if cls is not token:
            overrides.update(self._arguments.lookup(cls))
        overrides.update(self._arguments.lookup(token))
        overrides.update(normalize(args))

        positional, keywords = self._resolve_arguments(describe_class(cls), overrides, cls)
        logger.debug("Autowiring %s", _label(cls))
        return cls(*positional, **keywords)

    def _resolve_arguments(  # noqa: C901
        self,
        params: Parameters,
        overrides: dict[int | str, Any],
        owner: Any,
    ) -> tuple[list[Any], dict[str, Any]]:
        """Resolve every parameter in declaration order.

        Integer override keys address positions among the parameters that were not
        filled automatically: each typed parameter resolved through the container
        shifts the following positions down by one. Consumed keys are removed from
        `overrides` without re-indexing the others.
        """
        positional: list[Any] = []
        keywords: dict[str, Any] = {}
        typed = 0

        for p in params.descriptors:
            slot = p.position - typed

            keyword_only = p.kind is inspect.Parameter.KEYWORD_ONLY

            if p.name in overrides:
                value = overrides.pop(p.name)
            elif keyword_only and not p.typed:
                # keyword-only parameters are never addressed by position
                if not p.has_default:
                    msg = f"Parameter '{p.name}' not found for {_label(owner)}: no override or default given."
                    raise NotFoundError(msg)
                value = p.default
            elif keyword_only:
                value = self._resolve_dependency(p, owner)
            elif not p.typed:
                if slot in overrides:
                    value = overrides.pop(slot)
                elif p.has_default:
                    value = p.default
                else:
                    msg = f"Parameter '{p.name}' not found for {_label(owner)}: no override or default given."
                    raise NotFoundError(msg)
            elif slot in overrides and _is_prebuilt(overrides[slot]):
                value = overrides.pop(slot)
            else:
                typed += 1
                value = self._resolve_dependency(p, owner)

            if keyword_only:
                keywords[p.name] = value
            else:
                positional.append(value)

        extra_positional = sorted(k for k in overrides if isinstance(k, int))
        if params.var_positional:
            positional.extend(overrides[k] for k in extra_positional)

        extra_keywords = {k: v for k, v in overrides.items() if isinstance(k, str)}
        if extra_keywords:
            if not params.var_keyword:
                msg = f"Unexpected override(s) {', '.join(sorted(extra_keywords))} for {_label(owner)}"
                raise ContainerError(msg)
            keywords.update(extra_keywords)

        return positional, keywords

    def _resolve_dependency(self, p: ParameterDescriptor, owner: Any) -> Any:
        value = self.get(p.annotation)
        if value is not None:
            return value

        if p.has_default:
            return p.default

        msg = f"Dependency {_label(p.annotation)} of parameter '{p.name}' for {_label(owner)} resolved to None."
        raise ContainerError(msg)

    def _locate_class(self, token: Any) -> type:
        cls = token if inspect.isclass(token) else _import_class(token) if isinstance(token, str) else None

        if cls is None:
            msg = f"No registration or class found for token: {token!r}"
            raise NotFoundError(msg)

        if not self._autowire:
            msg = f"No registration found for token: {_label(token)} (autowiring disabled)"
            raise NotFoundError(msg)

        if not is_constructible(cls):
            msg = f"{_label(cls)} is abstract and has no registration"
            raise NotFoundError(msg)

        return cls

    def _locate_callable(self, target: Any) -> tuple[Any, Any, str]:
        """Return the function to invoke and the (owner, method) key of its stored overrides."""
        if isinstance(target, (tuple, list)):
            if len(target) != 2:
                msg = f"Expected a (subject, method) pair, got {target!r}"
                raise ContainerError(msg)
            subject, method = target
            func = self._locate_method(subject, method)
            owner = subject if _is_identifier(subject) else type(subject)
            return func, owner, method

        if not callable(target):
            msg = f"Target {target!r} is not callable"
            raise ContainerError(msg)

        if inspect.ismethod(target):
            bound_to = target.__self__
            return target, bound_to if inspect.isclass(bound_to) else type(bound_to), target.__name__

        if inspect.isroutine(target) or inspect.isclass(target):
            return target, target, "__call__"

        # callable instances may be unhashable; key their overrides by class
        return target, type(target), "__call__"

    def _locate_method(self, subject: Any, method: str) -> Any:
        if _is_identifier(subject) and not self.has(subject):
            cls = subject if inspect.isclass(subject) else _import_class(subject)
            if cls is not None and isinstance(inspect.getattr_static(cls, method, None), (staticmethod, classmethod)):
                return getattr(cls, method)

        obj = self.get(subject) if _is_identifier(subject) else subject

        try:
            return getattr(obj, method)
        except AttributeError as e:
            msg = f"Method '{method}' not found on {_label(subject)}"
            raise NotFoundError(msg) from e

    @contextmanager
    def _tracking(self, token: Any) -> Iterator[None]:
        if token in self._resolving:
            path = " -> ".join(_label(t) for t in [*self._resolving, token])
            msg = f"Circular dependency detected: {path}"
            raise CircularDependencyError(msg)

        self._resolving.append(token)
        try:
            yield
        finally:
            self._resolving.pop()


def _validate_impl(cls: type, impl: type) -> None:
    """Validate that 'impl' implements 'cls'.

    - For normal classes/ABCs: require issubclass(impl, cls).
    - For Protocols: nominal via MRO, otherwise every declared member must be present.
    """
    if not is_protocol(cls):
        if not issubclass(impl, cls):
            msg = f"Implementation {impl.__name__} must be a subclass of {cls.__name__}"
            raise BindingError(msg)
        return

    if cls in getattr(impl, "__mro__", ()):
        return

    missing = [name for name in protocol_members(cls) if not hasattr(impl, name)]
    if missing:
        msg = (
            f"Implementation {impl.__name__} does not structurally conform to protocol "
            f"{cls.__name__}: missing members: {', '.join(missing)}"
        )
        raise BindingError(msg)


def _import_class(path: str) -> type | None:
    """Import a class from ``"pkg.mod.Class"`` or ``"pkg.mod:Class"``; None if there is none."""
    module_name, sep, attr = path.partition(":")
    if sep:
        candidates = [(module_name, attr)]
    else:
        parts = path.split(".")
        candidates = [(".".join(parts[:i]), ".".join(parts[i:])) for i in range(len(parts) - 1, 0, -1)]

    for module_name, attr in candidates:
        # empty segments would make a relative or malformed import
        if "" in module_name.split(".") or "" in attr.split("."):
            continue
        try:
            obj: Any = importlib.import_module(module_name)
        except ModuleNotFoundError as exc:
            # only swallow the failure when it is the module we asked for
            if exc.name and (module_name == exc.name or module_name.startswith(exc.name + ".")):
                continue
            raise

        for part in attr.split("."):
            obj = getattr(obj, part, None)
            if obj is None:
                break

        if inspect.isclass(obj):
            return obj

    return None


def _is_identifier(value: Any) -> bool:
    return isinstance(value, str) or inspect.isclass(value)


def _is_prebuilt(value: Any) -> bool:
    """True for constructed objects and callbacks, False for builtin values such as numbers, strings or lists."""
    if isinstance(value, (types.FunctionType, types.MethodType, types.BuiltinMethodType)):
        return True
    return value is not None and type(value).__module__ != "builtins"


def _label(token: Any) -> str:
    return getattr(token, "__qualname__", None) or repr(token)
