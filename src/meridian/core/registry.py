"""
Definition registry.

Process-wide store of raw CRS definitions keyed by authority and code.
Each authority's store is seeded lazily from the built-in definitions
source on first access and can then be overridden or pruned at runtime.

Stores are published as read-only mappings and replaced wholesale on
every mutation, so readers never observe a half-updated store.
"""

import logging
import threading
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from meridian.models.crs import Code, CRSKey
from meridian.providers.definitions import DefinitionsSource, PackagedDefinitionsSource

logger = logging.getLogger(__name__)

_EMPTY: Mapping[str, str] = MappingProxyType({})


class DefinitionRegistry:
    """
    Store of raw definition strings per authority.

    Example:
        >>> registry = DefinitionRegistry()
        >>> registry.set_projection("Test", 1, "+proj=longlat +datum=WGS84")
        >>> registry.get_projection("Test", "1")
        '+proj=longlat +datum=WGS84'
    """

    def __init__(self, source: Optional[DefinitionsSource] = None) -> None:
        """
        Initialize the registry.

        Args:
            source: Built-in definitions source (defaults to packaged JSON)
        """
        self.source = source or PackagedDefinitionsSource()
        self._lock = threading.RLock()
        self._stores: Mapping[str, Mapping[str, str]] = _EMPTY

    def get_or_create_projections(self, authority: str) -> Mapping[str, str]:
        """
        Get an authority's store, loading built-in defaults on first access.

        Args:
            authority: Case-sensitive authority name

        Returns:
            Read-only snapshot of the store (code -> definition)
        """
        store = self._stores.get(authority)
        if store is not None:
            return store

        # Loading reads packaged data; keep it outside the lock
        defaults = self.source.load(authority)

        with self._lock:
            store = self._stores.get(authority)
            if store is None:
                store = MappingProxyType(dict(defaults))
                self._publish(authority, store)
                logger.info(
                    f"Loaded {len(store)} built-in definitions for authority {authority}"
                )
            return store

    def get_projection(self, authority: str, code: Code) -> Optional[str]:
        """
        Look up one definition.

        Args:
            authority: Authority name
            code: Numeric or string code

        Returns:
            Definition string, or None if the code is not registered
        """
        key = CRSKey.of(authority, code)
        return self.get_or_create_projections(key.authority).get(key.code)

    def set_projection(self, authority: str, code: Code, definition: str) -> None:
        """
        Insert or replace one definition.

        Args:
            authority: Authority name
            code: Numeric or string code
            definition: Parameter string or WKT text
        """
        self.set_projections(authority, {code: definition})

    def set_projections(self, authority: str, definitions: Mapping[Code, str]) -> None:
        """
        Insert or replace several definitions of one authority.

        Built-in defaults are loaded first so they are merged, not hidden.

        Args:
            authority: Authority name
            definitions: Mapping of code to definition
        """
        self.get_or_create_projections(authority)

        updates = {CRSKey.of(authority, code).code: value for code, value in definitions.items()}
        with self._lock:
            store = dict(self._stores.get(authority, _EMPTY))
            store.update(updates)
            self._publish(authority, MappingProxyType(store))

        logger.debug(f"Set {len(updates)} definitions for authority {authority}")

    def clear(self, authority: Optional[str] = None, code: Optional[Code] = None) -> None:
        """
        Remove definitions.

        With no arguments every store is dropped; with an authority that
        store is dropped. Dropped stores reload their built-ins on next
        access. With an authority and a code only that entry is removed,
        and a removed built-in stays removed until set again.

        Args:
            authority: Authority to clear, or None for all
            code: Code to remove within the authority
        """
        if authority is None:
            if code is not None:
                raise ValueError("clear() needs an authority when a code is given")
            with self._lock:
                self._stores = _EMPTY
            logger.debug("Cleared all definition stores")
            return

        if code is not None:
            # Load built-ins first so the removal is not undone by a later load
            self.get_or_create_projections(authority)

        with self._lock:
            stores = dict(self._stores)
            if code is None:
                stores.pop(authority, None)
                logger.debug(f"Cleared definition store for authority {authority}")
            elif authority in stores:
                store = dict(stores[authority])
                store.pop(CRSKey.of(authority, code).code, None)
                stores[authority] = MappingProxyType(store)
                logger.debug(f"Removed definition {authority}:{code}")
            self._stores = MappingProxyType(stores)

    def authorities(self) -> List[str]:
        """Names of authorities with a loaded store."""
        return sorted(self._stores)

    def _publish(self, authority: str, store: Mapping[str, str]) -> None:
        # Caller holds the lock
        stores: Dict[str, Mapping[str, str]] = dict(self._stores)
        stores[authority] = store
        self._stores = MappingProxyType(stores)


_default_registry: Optional[DefinitionRegistry] = None
_default_registry_lock = threading.Lock()


def get_default_registry() -> DefinitionRegistry:
    """
    Get the process-wide registry, creating it on first use.

    Returns:
        DefinitionRegistry instance
    """
    global _default_registry
    if _default_registry is None:
        with _default_registry_lock:
            if _default_registry is None:
                _default_registry = DefinitionRegistry()
    return _default_registry


def reset_default_registry() -> None:
    """Discard the process-wide registry; the next access creates a new one."""
    global _default_registry
    with _default_registry_lock:
        _default_registry = None


def get_or_create_projections(authority: str) -> Mapping[str, str]:
    """Default-registry shortcut for DefinitionRegistry.get_or_create_projections."""
    return get_default_registry().get_or_create_projections(authority)


def get_projection(authority: str, code: Code) -> Optional[str]:
    """Default-registry shortcut for DefinitionRegistry.get_projection."""
    return get_default_registry().get_projection(authority, code)


def set_projection(authority: str, code: Code, definition: str) -> None:
    """Default-registry shortcut for DefinitionRegistry.set_projection."""
    get_default_registry().set_projection(authority, code, definition)


def set_projections(authority: str, definitions: Mapping[Code, str]) -> None:
    """Default-registry shortcut for DefinitionRegistry.set_projections."""
    get_default_registry().set_projections(authority, definitions)


def clear(authority: Optional[str] = None, code: Optional[Code] = None) -> None:
    """Default-registry shortcut for DefinitionRegistry.clear."""
    get_default_registry().clear(authority, code)
