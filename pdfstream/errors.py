"""Exception hierarchy for PDF parsing, decoding and encoding."""

from __future__ import annotations


class PdfError(Exception):
    """Base class of every error raised by this package."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def is_eof(self) -> bool:
        """Tell whether this error, or an error it was raised from, is an end of input."""
        cause = self.__cause__
        if isinstance(cause, PdfError):
            return cause.is_eof()
        return False


class UnexpectedEof(PdfError):
    """The input ended before the parser was done."""

    def __init__(self) -> None:
        super().__init__("Unexpected end of file")

    def is_eof(self) -> bool:
        return True


class NoOpArgError(PdfError):
    """An operator got fewer operands than it needs."""

    def __init__(self) -> None:
        super().__init__("Not enough Operator arguments")


class BoundsError(PdfError):
    """An index lies outside a sequence."""

    def __init__(self, index: int, length: int) -> None:
        super().__init__(f"Out of bounds: index {index}, but len is {length}")
        self.index = index
        self.length = length


class UnexpectedLexemeError(PdfError):
    """The lexer found a different token from the one expected."""

    def __init__(self, pos: int, lexeme: str, expected: str) -> None:
        super().__init__(
            f"Unexpected token '{lexeme}' at {pos} - expected '{expected}'"
        )
        self.pos = pos
        self.lexeme = lexeme
        self.expected = expected


class UnknownVariantError(PdfError):
    """A name does not match any variant of an enumeration."""

    def __init__(self, id: str, name: str) -> None:
        super().__init__(f"Unknown variant '{name}' for enum {id}")
        self.id = id
        self.name = name


class NotFoundError(PdfError):
    """A keyword searched for in the input is absent."""

    def __init__(self, word: str) -> None:
        super().__init__(f"'{word}' not found.")
        self.word = word


class ContentReadPastBoundaryError(PdfError):
    """A read went past the end of the available data."""

    def __init__(self) -> None:
        super().__init__("Parsing read past boundary of Contents.")


class HexDecodeError(PdfError):
    """A pair of characters in hex data is not a valid byte."""

    def __init__(self, pos: int, pair: bytes) -> None:
        super().__init__(f"Hex decode error. Position {pos}, bytes {list(pair)}")
        self.pos = pos
        self.pair = bytes(pair)


class Ascii85TailError(PdfError):
    """ASCII85 data is malformed or lacks its end marker."""

    def __init__(self) -> None:
        super().__init__("Ascii85 tail error")


class IncorrectPredictorTypeError(PdfError):
    """A row of predicted data names an unknown predictor."""

    def __init__(self, n: int) -> None:
        super().__init__(f"Failed to convert '{n}' into PredictorType")
        self.n = n


class MissingEntryError(PdfError):
    """A required dictionary entry is missing."""

    def __init__(self, typ: str, field: str) -> None:
        super().__init__(f"Field /{field} is missing in dictionary for type {typ}.")
        self.typ = typ
        self.field = field


class UnexpectedPrimitiveError(PdfError):
    """A value has a different kind from the one required."""

    def __init__(self, expected: str, found: str) -> None:
        super().__init__(
            f"Expected primitive {expected}, found primitive {found} instead."
        )
        self.expected = expected
        self.found = found


class InvalidError(PdfError):
    """The input is invalid in a way not described further."""

    def __init__(self) -> None:
        super().__init__("Invalid")