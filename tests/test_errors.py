"""
Tests for the exception hierarchy.
"""

from meridian.core.errors import (
    BuildError,
    ConfigurationError,
    DefinitionNotFoundError,
    MeridianException,
    ParseError,
    TransformationError,
)


class TestMeridianException:
    """Tests for the base exception."""

    def test_to_dict(self) -> None:
        """Test dictionary conversion."""
        error = MeridianException("Something failed", "TEST_ERROR", details={"a": 1})

        assert error.to_dict() == {
            "error_code": "TEST_ERROR",
            "message": "Something failed",
            "details": {"a": 1},
            "suggestions": [],
        }

    def test_str_and_repr(self) -> None:
        """Test string representations."""
        error = MeridianException("Something failed", "TEST_ERROR")

        assert str(error) == "TEST_ERROR: Something failed"
        assert repr(error) == "MeridianException(error_code='TEST_ERROR', message='Something failed')"


class TestSpecificErrors:
    """Tests for the specific error types."""

    def test_parse_error(self) -> None:
        """Test ParseError carries the keyword and offset."""
        error = ParseError("Unsupported WKT keyword: VERT_CS", keyword="VERT_CS", offset=0)

        assert isinstance(error, MeridianException)
        assert error.error_code == "PARSE_ERROR"
        assert error.keyword == "VERT_CS"
        assert error.details == {"keyword": "VERT_CS", "offset": 0}
        assert error.suggestions

    def test_definition_not_found(self) -> None:
        """Test the default message names the key."""
        error = DefinitionNotFoundError("EPSG", 999999)

        assert error.error_code == "DEFINITION_NOT_FOUND"
        assert error.message == "No projection definition found for EPSG:999999"
        assert error.code == "999999"
        assert error.details == {"authority": "EPSG", "code": "999999"}

    def test_build_error(self) -> None:
        """Test BuildError carries the key and parameter."""
        error = BuildError("Unknown parameter: invalid", authority="NONE", code=100001, parameter="invalid")

        assert error.error_code == "BUILD_ERROR"
        assert error.code == "100001"
        assert error.details == {"authority": "NONE", "code": "100001", "parameter": "invalid"}

    def test_build_error_without_key(self) -> None:
        """Test providers can raise BuildError before the key is known."""
        error = BuildError("Unknown parameter: invalid", parameter="invalid")

        assert error.authority is None
        assert error.code is None

    def test_transformation_error(self) -> None:
        """Test TransformationError records both CRS."""
        error = TransformationError("failed", source_crs="EPSG:4326", target_crs="EPSG:3857")

        assert error.error_code == "TRANSFORMATION_ERROR"
        assert error.details == {"source_crs": "EPSG:4326", "target_crs": "EPSG:3857"}

    def test_configuration_error(self) -> None:
        """Test ConfigurationError records the key."""
        error = ConfigurationError("bad", config_key="definitions_package")

        assert error.error_code == "CONFIGURATION_ERROR"
        assert error.details == {"config_key": "definitions_package"}
