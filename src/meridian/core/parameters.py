"""
PROJ-style parameter strings.

A definition is a whitespace-delimited list of ``+key`` or ``+key=value``
tokens. Tokens generated from WKT are written as ``key=value``; the
leading ``+`` is optional everywhere.
"""

from typing import List, Optional, Sequence, Tuple, Union

Definition = Union[str, Sequence[str]]


def split_parameters(definition: Definition) -> Tuple[str, ...]:
    """
    Split a definition into parameter tokens.

    Args:
        definition: Parameter string, or a sequence of tokens

    Returns:
        Tuple of non-empty tokens in their original order
    """
    if isinstance(definition, str):
        return tuple(definition.split())

    tokens: List[str] = []
    for item in definition:
        tokens.extend(str(item).split())
    return tuple(tokens)


def parse_parameter(token: str) -> Tuple[str, Optional[str]]:
    """
    Split one token into its key and optional value.

    Args:
        token: ``+key``, ``+key=value``, ``key`` or ``key=value``

    Returns:
        Tuple of (key, value); value is None for bare flags

    Raises:
        ValueError: If the token has no key
    """
    body = token[1:] if token.startswith("+") else token
    key, sep, value = body.partition("=")
    if not key:
        raise ValueError(f"Parameter token without a key: {token!r}")
    return key, (value if sep else None)


def format_value(value: float) -> str:
    """
    Format a number with full precision, independent of locale.

    Args:
        value: Number to format

    Returns:
        Shortest string that round-trips to the same float
    """
    return repr(float(value))


def format_parameter(key: str, value: Optional[Union[str, float]] = None) -> str:
    """
    Build a ``+key`` or ``+key=value`` token.

    Args:
        key: Parameter key
        value: Optional value; floats are formatted with format_value

    Returns:
        Parameter token
    """
    if value is None:
        return f"+{key}"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = format_value(value)
    return f"+{key}={value}"

