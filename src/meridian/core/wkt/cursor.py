"""
WKT tokenizer and element cursor.

Text such as ``UNIT["degree",0.0174532925199433,AUTHORITY["EPSG","9122"]]``
is read into a tree of :class:`Element` nodes. Grammar rules consume each
node's children through a small set of primitives: pull a positional
scalar, pull a child element by keyword, peek at the next child's kind,
and close the node once everything expected has been pulled.
"""

import re
from enum import Enum
from typing import List, Optional, Union

from meridian.core.errors import ParseError

Child = Union[str, int, float, "Element"]

_KEYWORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_CLOSING = {"[": "]", "(": ")"}


class TokenKind(str, Enum):
    """Kind of a child token."""

    STRING = "string"
    NUMBER = "number"
    ELEMENT = "element"


def kind_of(child: Child) -> TokenKind:
    """Classify a child token."""
    if isinstance(child, Element):
        return TokenKind.ELEMENT
    if isinstance(child, str):
        return TokenKind.STRING
    return TokenKind.NUMBER


class Element:
    """
    A ``KEYWORD[child, child, ...]`` node.

    Children are quoted strings or bare identifiers (``str``), numbers
    (``int`` or ``float``) and nested elements. Pulled children are
    removed, so :meth:`close` can detect leftovers.

    Attributes:
        keyword: Element keyword
        offset: Character offset of the keyword in the source text
        parent: Enclosing element, or None for the root
    """

    def __init__(
        self,
        keyword: str,
        offset: int,
        parent: Optional["Element"] = None,
    ) -> None:
        self.keyword = keyword
        self.offset = offset
        self.parent = parent
        self.children: List[Child] = []

    @property
    def is_root(self) -> bool:
        """True for the outermost element."""
        return self.parent is None

    def peek(self) -> Optional[TokenKind]:
        """
        Kind of the next child without consuming it.

        Returns:
            TokenKind, or None if no children remain
        """
        if not self.children:
            return None
        return kind_of(self.children[0])

    def pull_string(self, key: str) -> str:
        """
        Pull the next child, which must be a string.

        Args:
            key: Logical name used in error messages

        Raises:
            ParseError: If no child remains or it is not a string
        """
        return self._pull_scalar(key, TokenKind.STRING)

    def pull_optional_string(self, key: str) -> Optional[str]:
        """Pull the next child if it is a string; otherwise return None."""
        if self.peek() is TokenKind.STRING:
            return self.pull_string(key)
        return None

    def pull_double(self, key: str) -> float:
        """
        Pull the next child, which must be a number.

        Raises:
            ParseError: If no child remains or it is not a number
        """
        return float(self._pull_scalar(key, TokenKind.NUMBER))

    def pull_integer(self, key: str) -> int:
        """
        Pull the next child, which must be an integral number.

        Raises:
            ParseError: If no child remains or it is not an integer
        """
        value = self._pull_scalar(key, TokenKind.NUMBER)
        if isinstance(value, float):
            if not value.is_integer():
                raise self.parse_failed(
                    f'Parameter "{key}" in "{self.keyword}" element must be an integer, got {value!r}'
                )
            value = int(value)
        return value

    def pull_element(self, keyword: str) -> "Element":
        """
        Pull the first child element with the given keyword.

        Raises:
            ParseError: If no such element remains
        """
        element = self.pull_optional_element(keyword)
        if element is None:
            raise ParseError(
                f'Missing "{keyword}" element in "{self.keyword}"',
                keyword=keyword,
                offset=self.offset,
            )
        return element

    def pull_optional_element(self, keyword: str) -> Optional["Element"]:
        """Pull the first child element with the given keyword, or None."""
        for index, child in enumerate(self.children):
            if isinstance(child, Element) and child.keyword == keyword:
                del self.children[index]
                return child
        return None

    def close(self) -> None:
        """
        Assert every child has been consumed.

        Raises:
            ParseError: If children remain
        """
        if self.children:
            leftover = self.children[0]
            if isinstance(leftover, Element):
                description = f'element "{leftover.keyword}"'
                offset = leftover.offset
            else:
                description = f"{kind_of(leftover).value} {leftover!r}"
                offset = self.offset
            raise ParseError(
                f'Unexpected {description} in "{self.keyword}" element',
                keyword=self.keyword,
                offset=offset,
            )

    def parse_failed(self, message: str) -> ParseError:
        """Build a ParseError located at this element."""
        return ParseError(message, keyword=self.keyword, offset=self.offset)

    def _pull_scalar(self, key: str, expected: TokenKind) -> Union[str, int, float]:
        if not self.children:
            raise self.parse_failed(f'Missing parameter "{key}" in "{self.keyword}" element')
        child = self.children[0]
        if kind_of(child) is not expected:
            raise self.parse_failed(
                f'Parameter "{key}" in "{self.keyword}" element must be a '
                f"{expected.value}, got {kind_of(child).value}"
            )
        del self.children[0]
        return child

    def __repr__(self) -> str:
        """Detailed string representation for debugging."""
        return f"Element({self.keyword!r}, children={len(self.children)}, offset={self.offset})"


class _Reader:
    """Recursive-descent reader over WKT text."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def fail(self, message: str, keyword: Optional[str] = None) -> ParseError:
        return ParseError(f"{message} at offset {self.pos}", keyword=keyword, offset=self.pos)

    def read_keyword(self) -> str:
        match = _KEYWORD.match(self.text, self.pos)
        if match is None:
            raise self.fail("Expected a keyword")
        self.pos = match.end()
        return match.group()

    def read_element(self, parent: Optional[Element]) -> Element:
        offset = self.pos
        keyword = self.read_keyword()
        self.skip_whitespace()
        opening = self.text[self.pos] if not self.at_end() else ""
        if opening not in _CLOSING:
            raise self.fail(f'Expected "[" after "{keyword}"', keyword=keyword)
        self.pos += 1

        element = Element(keyword, offset, parent)
        closing = _CLOSING[opening]

        self.skip_whitespace()
        if not self.at_end() and self.text[self.pos] == closing:
            self.pos += 1
            return element

        while True:
            element.children.append(self.read_child(element))
            self.skip_whitespace()
            if self.at_end():
                raise self.fail(f'Unterminated "{keyword}" element', keyword=keyword)
            char = self.text[self.pos]
            self.pos += 1
            if char == closing:
                return element
            if char != ",":
                self.pos -= 1
                raise self.fail(f'Expected "," or "{closing}" in "{keyword}"', keyword=keyword)

    def read_child(self, parent: Element) -> Child:
        self.skip_whitespace()
        if self.at_end():
            raise self.fail(f'Unterminated "{parent.keyword}" element', keyword=parent.keyword)
        char = self.text[self.pos]

        if char == '"':
            return self.read_string()

        number = _NUMBER.match(self.text, self.pos)
        if number is not None:
            self.pos = number.end()
            literal = number.group()
            if any(mark in literal for mark in ".eE"):
                return float(literal)
            return int(literal)

        if _KEYWORD.match(self.text, self.pos):
            start = self.pos
            keyword = self.read_keyword()
            self.skip_whitespace()
            if not self.at_end() and self.text[self.pos] in _CLOSING:
                self.pos = start
                return self.read_element(parent)
            # Bare identifier, e.g. an AXIS orientation
            return keyword

        raise self.fail(f"Unexpected character {char!r} in \"{parent.keyword}\"", keyword=parent.keyword)

    def read_string(self) -> str:
        # Opening quote; a doubled quote inside the string is a literal quote
        self.pos += 1
        parts: List[str] = []
        while True:
            end = self.text.find('"', self.pos)
            if end < 0:
                raise self.fail("Unterminated quoted string")
            parts.append(self.text[self.pos:end])
            self.pos = end + 1
            if self.text.startswith('"', self.pos):
                parts.append('"')
                self.pos += 1
                continue
            return "".join(parts)


def parse_element(text: str) -> Element:
    """
    Read WKT text into its root element.

    Args:
        text: WKT text

    Returns:
        Root element

    Raises:
        ParseError: If the text is not a single well-formed element
    """
    reader = _Reader(text)
    reader.skip_whitespace()
    root = reader.read_element(parent=None)
    reader.skip_whitespace()
    if not reader.at_end():
        raise reader.fail(f'Unexpected text after "{root.keyword}" element', keyword=root.keyword)
    return root
