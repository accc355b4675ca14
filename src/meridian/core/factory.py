"""
CRS factory.

Process-wide cache of resolved CRS objects keyed by authority and code.
On a miss the factory resolves a definition (supplied directly or looked
up in the definition registry), routes WKT through the parser, builds the
CRS with the math provider and publishes it. The first object published
for a key wins; later definitions for a cached key are ignored until the
key is cleared.

The factory cache and the definition registry are independent: clearing
one never clears the other.
"""

import logging
import threading
from dataclasses import replace
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Union

from meridian.core.config import settings
from meridian.core.crs.projection import Projection
from meridian.core.errors import BuildError, DefinitionNotFoundError, ParseError
from meridian.core.parameters import Definition, split_parameters
from meridian.core.registry import DefinitionRegistry, get_default_registry
from meridian.core.wkt import WKTParser, is_wkt, to_parameters
from meridian.models.crs import Code, CRSDefinition, CRSKey
from meridian.providers import MathProvider, get_default_provider
from meridian.utils.logging import PerformanceTimer

logger = logging.getLogger(__name__)

_EMPTY: Mapping[CRSKey, Projection] = MappingProxyType({})


class CRSFactory:
    """
    Resolve and cache CRS objects.

    Example:
        >>> factory = CRSFactory()
        >>> web_mercator = factory.get_projection("EPSG", 3857)
        >>> wgs84 = factory.get_projection(4326)  # default authority
        >>> transform = wgs84.get_transformation(web_mercator)
    """

    def __init__(
        self,
        provider: Optional[MathProvider] = None,
        registry: Optional[DefinitionRegistry] = None,
        default_authority: Optional[str] = None,
        build_warn_threshold_ms: Optional[float] = None,
    ) -> None:
        """
        Initialize the factory.

        Args:
            provider: Math provider (defaults to the pyproj provider)
            registry: Definition registry (defaults to the process-wide one)
            default_authority: Authority for single-argument lookups
            build_warn_threshold_ms: Builds slower than this are logged as warnings
        """
        self.provider = provider or get_default_provider()
        self.registry = registry or get_default_registry()
        self.default_authority = default_authority or settings.default_authority
        self.build_warn_threshold_ms = (
            settings.build_warn_threshold_ms
            if build_warn_threshold_ms is None
            else build_warn_threshold_ms
        )
        self.parser = WKTParser(self.provider)
        self._lock = threading.Lock()
        self._cache: Mapping[CRSKey, Projection] = _EMPTY

    def get_projection(
        self,
        authority: Union[str, Code],
        code: Optional[Code] = None,
        definition: Optional[Definition] = None,
    ) -> Projection:
        """
        Get the CRS for a key, building and caching it on first use.

        ``get_projection(code)`` looks the code up under the default
        authority only.

        Args:
            authority: Authority name, or the code when ``code`` is omitted
            code: Authority code
            definition: Parameter string, parameter tokens or WKT text,
                used only if the key is not cached yet

        Returns:
            Resolved CRS

        Raises:
            DefinitionNotFoundError: If no definition is supplied or registered
            ParseError: If WKT text cannot be parsed
            BuildError: If the math provider rejects the definition
        """
        if code is None:
            authority, code = self.default_authority, authority

        key = CRSKey.of(str(authority), code)

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"CRS cache hit for {key}")
            return cached

        if definition is None:
            definition = self.registry.get_projection(key.authority, key.code)
            if definition is None:
                raise DefinitionNotFoundError(key.authority, key.code)

        logger.debug(f"CRS cache miss for {key}, building")
        projection = self._build(key, definition)
        return self._publish(projection)

    def clear(self, authority: Optional[str] = None, code: Optional[Code] = None) -> None:
        """
        Evict cached CRS objects; the registry is not touched.

        Args:
            authority: Authority to evict, or None for everything
            code: Code to evict within the authority
        """
        if authority is None:
            if code is not None:
                raise ValueError("clear() needs an authority when a code is given")
            with self._lock:
                self._cache = _EMPTY
            logger.debug("Cleared CRS cache")
            return

        with self._lock:
            if code is None:
                cache = {key: value for key, value in self._cache.items() if key.authority != authority}
            else:
                evicted = CRSKey.of(authority, code)
                cache = {key: value for key, value in self._cache.items() if key != evicted}
            self._cache = MappingProxyType(cache)

        logger.debug(f"Cleared CRS cache for {authority}{'' if code is None else f':{code}'}")

    def cached_keys(self) -> List[CRSKey]:
        """Keys with a cached CRS."""
        return list(self._cache)

    def _build(self, key: CRSKey, definition: Definition) -> Projection:
        """Build a CRS without holding the lock."""
        tree = None
        if isinstance(definition, str) and is_wkt(definition):
            try:
                tree = self.parser.parse(definition)
            except ParseError as e:
                e.details.update({"authority": key.authority, "code": key.code})
                raise
            crs_definition = CRSDefinition(
                parameters=to_parameters(tree), name=tree.name, wkt=definition
            )
        else:
            crs_definition = CRSDefinition(parameters=split_parameters(definition))

        if not crs_definition.parameters:
            raise BuildError(
                f"Empty definition for {key}", authority=key.authority, code=key.code
            )

        try:
            with PerformanceTimer(f"Build {key}", warn_threshold_ms=self.build_warn_threshold_ms):
                handle = self.provider.create_projection(crs_definition.parameters)
        except BuildError as e:
            raise BuildError(
                f"Cannot build {key}: {e.message}",
                authority=key.authority,
                code=key.code,
                parameter=e.parameter,
                details=dict(e.details),
            ) from e

        if tree is not None:
            # Parameter tokens carry no datum name; keep the one from the WKT
            handle.datum = replace(handle.datum, name=tree.datum.name)

        return Projection(key, crs_definition, handle, self.provider)

    def _publish(self, projection: Projection) -> Projection:
        """Publish a built CRS unless another thread got there first."""
        with self._lock:
            existing = self._cache.get(projection.key)
            if existing is not None:
                logger.debug(f"Discarded concurrent build of {projection.key}")
                return existing

            cache: Dict[CRSKey, Projection] = dict(self._cache)
            cache[projection.key] = projection
            self._cache = MappingProxyType(cache)

        logger.debug(f"Published CRS {projection.key}")
        return projection


_default_factory: Optional[CRSFactory] = None
_default_factory_lock = threading.Lock()


def get_default_factory() -> CRSFactory:
    """
    Get the process-wide factory, creating it on first use.

    Returns:
        CRSFactory instance
    """
    global _default_factory
    if _default_factory is None:
        with _default_factory_lock:
            if _default_factory is None:
                _default_factory = CRSFactory()
    return _default_factory


def reset_default_factory() -> None:
    """Discard the process-wide factory; the next access creates a new one."""
    global _default_factory
    with _default_factory_lock:
        _default_factory = None


def get_projection(
    authority: Union[str, Code],
    code: Optional[Code] = None,
    definition: Optional[Definition] = None,
) -> Projection:
    """Default-factory shortcut for CRSFactory.get_projection."""
    return get_default_factory().get_projection(authority, code, definition)


def clear(authority: Optional[str] = None, code: Optional[Code] = None) -> None:
    """Default-factory shortcut for CRSFactory.clear."""
    get_default_factory().clear(authority, code)
