"""Autowiring dependency injection container.

This package provides a small dependency injection container for Python that
builds object graphs from constructor type annotations, with explicit bindings,
recorded override arguments and singleton caching.

Exports:
- `Container`: DI container (`bind`, `singleton`, `instance`, `arg`/`args`, `get`, `make`, `call`).
- `Lifetime`: Enum for controlling object lifetimes (singleton or transient).
- `ContainerError`: Base error for misconfiguration and failed resolution.
- `NotFoundError`: An identifier, class or required parameter could not be located.
- `CircularDependencyError`: An identifier was requested while it was still being resolved.
- `BindingError`: A registration is malformed or does not fit its token.
"""

from ._container import Container, Lifetime
from ._errors import BindingError, CircularDependencyError, ContainerError, NotFoundError


__all__ = [
    "BindingError",
    "CircularDependencyError",
    "Container",
    "ContainerError",
    "Lifetime",
    "NotFoundError",
]
