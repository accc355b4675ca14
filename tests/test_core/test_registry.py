"""
Tests for the definition registry.
"""

import threading

import pytest

from meridian.core import registry as registry_module
from meridian.core.constants import (
    AUTHORITY_EPSG,
    AUTHORITY_NONE,
    EPSG_WORLD_GEODETIC_SYSTEM,
    UNDEFINED_CARTESIAN,
    UNDEFINED_GEOGRAPHIC,
)
from meridian.core.registry import DefinitionRegistry
from meridian.providers.definitions import InMemoryDefinitionsSource

LONGLAT = "+proj=longlat +datum=WGS84 +no_defs"


class CountingSource(InMemoryDefinitionsSource):
    """In-memory source that counts loads per authority."""

    def __init__(self, tables):
        super().__init__(tables)
        self.loads = []

    def load(self, authority):
        self.loads.append(authority)
        return super().load(authority)


class TestDefinitionRegistry:
    """Tests for DefinitionRegistry."""

    def test_builtins_loaded_on_first_access(self, registry: DefinitionRegistry) -> None:
        """Test an authority's defaults are loaded lazily."""
        assert registry.authorities() == []

        store = registry.get_or_create_projections("EPSG")

        assert set(store) == {"4326", "3857"}
        assert registry.authorities() == ["EPSG"]

    def test_builtins_loaded_once(self) -> None:
        """Test the source is consulted once per authority."""
        source = CountingSource({"EPSG": {4326: LONGLAT}})
        registry = DefinitionRegistry(source)

        registry.get_or_create_projections("EPSG")
        registry.get_projection("EPSG", 4326)
        registry.set_projection("EPSG", 1, LONGLAT)

        assert source.loads == ["EPSG"]

    def test_unknown_authority_is_empty(self, registry: DefinitionRegistry) -> None:
        """Test an authority without defaults gets an empty store."""
        assert dict(registry.get_or_create_projections("Test")) == {}
        assert "Test" in registry.authorities()

    def test_store_is_read_only(self, registry: DefinitionRegistry) -> None:
        """Test published stores cannot be mutated."""
        store = registry.get_or_create_projections("EPSG")
        with pytest.raises(TypeError):
            store["1"] = LONGLAT

    def test_get_projection(self, registry: DefinitionRegistry) -> None:
        """Test lookups accept integer and string codes."""
        assert registry.get_projection("EPSG", 4326) == LONGLAT
        assert registry.get_projection("EPSG", "4326") == LONGLAT
        assert registry.get_projection("EPSG", " 4326 ") == LONGLAT

    def test_get_projection_miss(self, registry: DefinitionRegistry) -> None:
        """Test a miss returns None."""
        assert registry.get_projection("EPSG", 999999) is None
        assert registry.get_projection("Test", 1) is None

    def test_authorities_are_case_sensitive(self, registry: DefinitionRegistry) -> None:
        """Test 'epsg' is a different authority."""
        assert registry.get_projection("epsg", 4326) is None

    def test_set_projection(self, registry: DefinitionRegistry) -> None:
        """Test inserting a definition creates the store on demand."""
        registry.set_projection("Test", 100001, LONGLAT)

        assert registry.get_projection("Test", "100001") == LONGLAT

    def test_set_projection_replaces(self, registry: DefinitionRegistry) -> None:
        """Test replacing a built-in."""
        registry.set_projection("EPSG", 4326, "+proj=longlat +ellps=GRS80")
        assert registry.get_projection("EPSG", 4326) == "+proj=longlat +ellps=GRS80"

    def test_set_projection_keeps_builtins(self, registry: DefinitionRegistry) -> None:
        """Test the first set on an authority merges with its defaults."""
        registry.set_projection("EPSG", 1, LONGLAT)

        assert registry.get_projection("EPSG", 3857) is not None
        assert registry.get_projection("EPSG", 1) == LONGLAT

    def test_set_projections(self, registry: DefinitionRegistry) -> None:
        """Test bulk insertion."""
        registry.set_projections("Test", {1: LONGLAT, "2": LONGLAT, 3: LONGLAT})

        assert set(registry.get_or_create_projections("Test")) == {"1", "2", "3"}

    def test_snapshot_not_affected_by_later_sets(self, registry: DefinitionRegistry) -> None:
        """Test mutations publish a new store instead of changing the old one."""
        before = registry.get_or_create_projections("Test")
        registry.set_projection("Test", 1, LONGLAT)
        after = registry.get_or_create_projections("Test")

        assert "1" not in before
        assert "1" in after

    def test_clear_code_is_permanent(self, registry: DefinitionRegistry) -> None:
        """Test a removed built-in does not come back on its own."""
        registry.clear("EPSG", 4326)

        assert registry.get_projection("EPSG", 4326) is None
        assert registry.get_projection("EPSG", 3857) is not None

        registry.set_projection("EPSG", 4326, LONGLAT)
        assert registry.get_projection("EPSG", 4326) == LONGLAT

    def test_clear_code_before_first_access(self, registry: DefinitionRegistry) -> None:
        """Test removing a built-in from a store that was never loaded."""
        registry.clear("EPSG", 4326)
        assert registry.get_projection("EPSG", 4326) is None

    def test_clear_authority_reloads_builtins(self, registry: DefinitionRegistry) -> None:
        """Test dropping an authority reloads its defaults on next access."""
        registry.set_projection("EPSG", 1, LONGLAT)
        registry.clear("EPSG", 4326)

        registry.clear("EPSG")

        assert "EPSG" not in registry.authorities()
        assert registry.get_projection("EPSG", 4326) == LONGLAT
        assert registry.get_projection("EPSG", 1) is None

    def test_clear_authority_leaves_others(self, registry: DefinitionRegistry) -> None:
        """Test clearing one authority keeps the rest."""
        registry.set_projection("Test", 1, LONGLAT)
        registry.get_or_create_projections("EPSG")

        registry.clear("Test")

        assert registry.authorities() == ["EPSG"]

    def test_clear_all(self, registry: DefinitionRegistry) -> None:
        """Test clearing everything."""
        registry.set_projection("Test", 1, LONGLAT)
        registry.clear("EPSG", 4326)

        registry.clear()

        assert registry.authorities() == []
        assert registry.get_projection("Test", 1) is None
        assert registry.get_projection("EPSG", 4326) == LONGLAT

    def test_clear_code_without_authority(self, registry: DefinitionRegistry) -> None:
        """Test a code alone is rejected."""
        with pytest.raises(ValueError):
            registry.clear(code=4326)

    def test_concurrent_sets(self, registry: DefinitionRegistry) -> None:
        """Test concurrent writers never lose updates."""

        def writer(offset: int) -> None:
            for i in range(50):
                registry.set_projection("Test", offset * 1000 + i, LONGLAT)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(registry.get_or_create_projections("Test")) == 8 * 50


class TestDefaultRegistry:
    """Tests for the process-wide registry."""

    def test_singleton(self) -> None:
        """Test the default registry is created once."""
        assert registry_module.get_default_registry() is registry_module.get_default_registry()

    def test_module_functions(self) -> None:
        """Test module-level shortcuts use the default registry."""
        registry_module.set_projection("Test", 1, LONGLAT)

        assert registry_module.get_projection("Test", 1) == LONGLAT
        assert "1" in registry_module.get_or_create_projections("Test")

        registry_module.set_projections("Test", {2: LONGLAT})
        registry_module.clear("Test", 1)
        assert registry_module.get_projection("Test", 1) is None
        assert registry_module.get_projection("Test", 2) == LONGLAT

        registry_module.clear()
        assert registry_module.get_default_registry().authorities() == []

    def test_packaged_builtins(self) -> None:
        """Test the default registry reads the packaged tables."""
        assert "+datum=WGS84" in registry_module.get_projection(AUTHORITY_EPSG, EPSG_WORLD_GEODETIC_SYSTEM)
        assert registry_module.get_projection(AUTHORITY_NONE, UNDEFINED_CARTESIAN) is not None
        assert registry_module.get_projection(AUTHORITY_NONE, UNDEFINED_GEOGRAPHIC) is not None
