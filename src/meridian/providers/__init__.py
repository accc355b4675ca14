"""
Pluggable collaborators: projection math and built-in definitions.
"""

import threading
from typing import Optional

from meridian.providers.base import (
    GeocentricConverter,
    GeographicHandle,
    MathProvider,
    ProjectionHandle,
)
from meridian.providers.definitions import (
    DefinitionsSource,
    InMemoryDefinitionsSource,
    PackagedDefinitionsSource,
)

_default_provider: Optional[MathProvider] = None
_default_provider_lock = threading.Lock()


def get_default_provider() -> MathProvider:
    """
    Get the process-wide math provider, creating the pyproj one on first use.

    Returns:
        MathProvider instance
    """
    global _default_provider
    if _default_provider is None:
        with _default_provider_lock:
            if _default_provider is None:
                from meridian.providers.pyproj_provider import PyProjProvider

                _default_provider = PyProjProvider()
    return _default_provider


__all__ = [
    "DefinitionsSource",
    "GeocentricConverter",
    "GeographicHandle",
    "InMemoryDefinitionsSource",
    "MathProvider",
    "PackagedDefinitionsSource",
    "ProjectionHandle",
    "get_default_provider",
]
