from __future__ import annotations

from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    Overrides = Mapping[int | str, Any] | Sequence[Any]


CONSTRUCTOR = "__init__"


def normalize(values: Overrides | None) -> dict[int | str, Any]:
    """Return override values as a mapping keyed by position or parameter name.

    Lists and tuples are read positionally, so ``["a", "b"]`` becomes ``{0: "a", 1: "b"}``.
    """
    if values is None:
        return {}
    if isinstance(values, (list, tuple)):
        return dict(enumerate(values))
    return dict(values)


class ArgumentStore:
    """Override values recorded per identifier and per method ahead of resolution."""

    def __init__(self) -> None:
        self._values: dict[Any, dict[str, dict[int | str, Any]]] = {}

    def record(self, token: Any, method: str, values: Overrides) -> None:
        # merge: new keys are added, existing ones overwritten
        self._values.setdefault(token, {}).setdefault(method, {}).update(normalize(values))

    def lookup(self, token: Any, method: str = CONSTRUCTOR) -> dict[int | str, Any]:
        return dict(self._values.get(token, {}).get(method, {}))
