"""Font encodings: a base encoding plus a table of differences.

PDF values are given as plain Python objects: names as ``str``, integers as
``int``, arrays as ``list`` and dictionaries as ``dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from .errors import PdfError, UnexpectedPrimitiveError

_KNOWN_NAMES = frozenset(
    {
        "StandardEncoding",
        "SymbolEncoding",
        "MacRomanEncoding",
        "WinAnsiEncoding",
        "MacExpertEncoding",
        "Identity-H",
        "None",
    }
)


def _kind(value: Any) -> str:
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, int):
        return "Integer"
    if isinstance(value, float):
        return "Number"
    if isinstance(value, str):
        return "Name"
    if isinstance(value, (bytes, bytearray)):
        return "String"
    if isinstance(value, list):
        return "Array"
    if isinstance(value, dict):
        return "Dictionary"
    if value is None:
        return "Null"
    return type(value).__name__


@dataclass(frozen=True)
class BaseEncoding:
    """A named base encoding; names outside the standard set are kept as they are."""

    name: str

    STANDARD: ClassVar[BaseEncoding]
    SYMBOL: ClassVar[BaseEncoding]
    MAC_ROMAN: ClassVar[BaseEncoding]
    WIN_ANSI: ClassVar[BaseEncoding]
    MAC_EXPERT: ClassVar[BaseEncoding]
    IDENTITY_H: ClassVar[BaseEncoding]
    NONE: ClassVar[BaseEncoding]

    @classmethod
    def from_name(cls, name: str) -> BaseEncoding:
        """Build the base encoding a PDF name stands for."""
        if not isinstance(name, str):
            raise UnexpectedPrimitiveError("Name", _kind(name))
        return cls(name)

    def to_name(self) -> str:
        """Return the PDF name of this base encoding."""
        return self.name

    @property
    def is_other(self) -> bool:
        """True when the name is not one of the standard base encodings."""
        return self.name not in _KNOWN_NAMES


BaseEncoding.STANDARD = BaseEncoding("StandardEncoding")
BaseEncoding.SYMBOL = BaseEncoding("SymbolEncoding")
BaseEncoding.MAC_ROMAN = BaseEncoding("MacRomanEncoding")
BaseEncoding.WIN_ANSI = BaseEncoding("WinAnsiEncoding")
BaseEncoding.MAC_EXPERT = BaseEncoding("MacExpertEncoding")
BaseEncoding.IDENTITY_H = BaseEncoding("Identity-H")
BaseEncoding.NONE = BaseEncoding("None")


@dataclass
class Encoding:
    """A base encoding with glyph names overriding individual codes."""

    base: BaseEncoding
    differences: dict[int, str] = field(default_factory=dict)

    @classmethod
    def from_primitive(cls, p: Any) -> Encoding:
        """Read an encoding given either as a name or as an encoding dictionary."""
        if isinstance(p, str):
            return cls(BaseEncoding.from_name(p))
        if not isinstance(p, dict):
            raise PdfError(f"Unknown element: {p!r}")

        base_value = p.get("BaseEncoding")
        base = BaseEncoding.NONE if base_value is None else BaseEncoding.from_name(base_value)

        differences: dict[int, str] = {}
        parts = p.get("Differences")
        if parts is not None:
            if not isinstance(parts, list):
                raise UnexpectedPrimitiveError("Array", _kind(parts))
            gid = 0
            for part in parts:
                if isinstance(part, int) and not isinstance(part, bool):
                    gid = part & 0xFFFFFFFF
                elif isinstance(part, str):
                    differences[gid] = part
                    gid += 1
                else:
                    raise PdfError(f"Unknown part primitive in dictionary: {part!r}")
        return cls(base, differences)

    def to_primitive(self) -> str | dict[str, Any]:
        """Write the encoding as a name, or as a dictionary when there are differences."""
        base = self.base.to_name()
        if not self.differences:
            return base
        items: list[int | str] = []
        last: int | None = None
        for gid, name in sorted(self.differences.items()):
            if last is None or last + 1 != gid:
                items.append(gid)
            items.append(name)
            last = gid
        return {"BaseEncoding": base, "Differences": items}

    @classmethod
    def standard(cls) -> Encoding:
        """The standard Latin encoding without differences."""
        return cls(BaseEncoding.STANDARD)