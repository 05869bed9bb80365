class ContainerError(RuntimeError):
    """Base class for every resolution or registration failure."""


class NotFoundError(ContainerError, LookupError):
    """An identifier, class or required parameter could not be located."""


class CircularDependencyError(ContainerError):
    pass


class BindingError(ContainerError, TypeError):
    """A registration is malformed or its implementation does not fit the token."""
