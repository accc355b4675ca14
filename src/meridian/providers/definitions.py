"""
Built-in definition sources.

The registry consults a source once per authority to seed its store with
default ``code -> definition`` tables. The packaged source reads
``projections.<AUTHORITY>.json`` files shipped in ``meridian.data``.
"""

import json
import logging
from abc import ABC, abstractmethod
from importlib import resources
from typing import Dict, Mapping, Optional

from meridian.core.config import settings
from meridian.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class DefinitionsSource(ABC):
    """Read-only source of default definitions per authority."""

    @abstractmethod
    def load(self, authority: str) -> Dict[str, str]:
        """
        Load the default table for an authority.

        Args:
            authority: Case-sensitive authority name

        Returns:
            Mapping of code to definition; empty if the authority has no defaults
        """


class PackagedDefinitionsSource(DefinitionsSource):
    """Definitions stored as JSON resources inside a Python package."""

    def __init__(self, package: Optional[str] = None) -> None:
        """
        Initialize the source.

        Args:
            package: Package holding the JSON files (defaults to settings)
        """
        self.package = package or settings.definitions_package

    def resource_name(self, authority: str) -> str:
        """File name of an authority's table."""
        return f"projections.{authority}.json"

    def load(self, authority: str) -> Dict[str, str]:
        """
        Load ``projections.<authority>.json`` if it exists.

        Raises:
            ConfigurationError: If the file is not a JSON object of strings
        """
        name = self.resource_name(authority)
        try:
            resource = resources.files(self.package).joinpath(name)
        except ModuleNotFoundError as e:
            raise ConfigurationError(
                f"Definitions package {self.package!r} is not importable",
                config_key="definitions_package",
            ) from e

        if not resource.is_file():
            logger.debug(f"No built-in definitions for authority {authority}")
            return {}

        try:
            data = json.loads(resource.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in {name}: {e}", config_key=name
            ) from e

        if not isinstance(data, dict) or not all(
            isinstance(value, str) for value in data.values()
        ):
            raise ConfigurationError(
                f"{name} must map codes to definition strings", config_key=name
            )

        return {str(code).strip(): value for code, value in data.items()}


class InMemoryDefinitionsSource(DefinitionsSource):
    """Definitions held in plain mappings, keyed by authority."""

    def __init__(self, tables: Optional[Mapping[str, Mapping[object, str]]] = None) -> None:
        self._tables = {
            authority: {str(code): value for code, value in table.items()}
            for authority, table in (tables or {}).items()
        }

    def load(self, authority: str) -> Dict[str, str]:
        """Return a copy of the authority's table."""
        return dict(self._tables.get(authority, {}))
