"""Declarative property table behind the driver property bag.

The host application edits driver settings generically: it lists the
string keys, reads values, and writes them back.  Each key is declared
once as a :class:`PropertySpec` mapping it to an attribute of the
driver's settings dataclass together with its value type.

Type rules for writes:
    - ``bool`` keys accept only ``bool``
    - ``float`` keys accept ``int`` or ``float`` (never ``bool``)
    - ``int`` keys accept only ``int`` (never ``bool``)
    - ``str`` keys accept only ``str``, optionally restricted to choices

Anything else raises :class:`PropertyTypeError`; values are never
coerced from strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator


class PropertyTypeError(TypeError):
    """Raised when a property value has the wrong type for its key."""

    pass


@dataclass(frozen=True, slots=True)
class PropertySpec:
    """One settable driver property.

    Parameters
    ----------
    key : str
        Human-readable key shown by the host settings dialog.
    attr : str
        Attribute name on the settings dataclass.
    kind : type
        One of ``float``, ``int``, ``bool``, ``str``.
    choices : tuple[str, ...] | None
        Allowed values for ``str`` keys.
    """

    key: str
    attr: str
    kind: type
    choices: tuple[str, ...] | None = None

    def check(self, value: Any) -> Any:
        """Validate *value* for this key and return it in canonical type."""
        if self.kind is bool:
            if not isinstance(value, bool):
                raise PropertyTypeError(
                    f"'{self.key}' expects bool, got {type(value).__name__}"
                )
            return value
        if self.kind is float:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise PropertyTypeError(
                    f"'{self.key}' expects a number, got {type(value).__name__}"
                )
            return float(value)
        if self.kind is int:
            if isinstance(value, bool) or not isinstance(value, int):
                raise PropertyTypeError(
                    f"'{self.key}' expects int, got {type(value).__name__}"
                )
            return value
        if not isinstance(value, str):
            raise PropertyTypeError(
                f"'{self.key}' expects str, got {type(value).__name__}"
            )
        if self.choices is not None and value not in self.choices:
            raise ValueError(
                f"'{self.key}' must be one of {list(self.choices)}, "
                f"got {value!r}"
            )
        return value


class PropertyTable:
    """Ordered, duplicate-free collection of :class:`PropertySpec`."""

    def __init__(self, specs: Iterable[PropertySpec] = ()) -> None:
        self._specs: dict[str, PropertySpec] = {}
        for spec in specs:
            if spec.key in self._specs:
                raise ValueError(f"Duplicate property key: {spec.key!r}")
            self._specs[spec.key] = spec

    def extend(self, *specs: PropertySpec) -> PropertyTable:
        """Return a new table with *specs* appended after existing keys."""
        return PropertyTable([*self._specs.values(), *specs])

    def keys(self) -> list[str]:
        return list(self._specs)

    def get(self, key: str) -> PropertySpec | None:
        return self._specs.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._specs

    def __iter__(self) -> Iterator[PropertySpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)
