"""
WKT1 parsing.
"""

from meridian.core.wkt.cursor import Element, TokenKind, parse_element
from meridian.core.wkt.parser import (
    REJECTED_ROOTS,
    Parameter,
    WKTParser,
    is_wkt,
    parse,
    to_parameters,
)

__all__ = [
    "Element",
    "Parameter",
    "REJECTED_ROOTS",
    "TokenKind",
    "WKTParser",
    "is_wkt",
    "parse",
    "parse_element",
    "to_parameters",
]
