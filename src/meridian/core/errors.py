"""
Custom exception hierarchy for Meridian.

This module defines the exceptions raised while parsing WKT, resolving
CRS definitions, building CRS objects and transforming coordinates.
"""

from typing import Any, Dict, List, Optional

from meridian.models.crs import Code


class MeridianException(Exception):
    """
    Base exception for all Meridian-specific errors.

    All custom exceptions inherit from this base class to allow
    for unified exception handling by callers.

    Attributes:
        error_code: String identifier for the error type
        message: User-friendly error message
        details: Technical details for logging/debugging
        suggestions: Optional list of resolution suggestions
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize MeridianException.

        Args:
            message: User-friendly error message
            error_code: String identifier for the error type
            details: Technical details for logging
            suggestions: List of suggestions for resolution
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to a dictionary.

        Returns:
            Dictionary representation of the error
        """
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "suggestions": self.suggestions,
        }

    def __str__(self) -> str:
        """String representation of the exception."""
        return f"{self.error_code}: {self.message}"

    def __repr__(self) -> str:
        """Detailed string representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"error_code='{self.error_code}', "
            f"message='{self.message}')"
        )


class ParseError(MeridianException):
    """
    Raised when Well-Known Text cannot be parsed.

    Used for unsupported root keywords, missing elements or tokens,
    and unconsumed trailing content. A failed parse never yields a
    partial definition.
    """

    def __init__(
        self,
        message: str,
        keyword: Optional[str] = None,
        offset: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize ParseError.

        Args:
            message: User-friendly error message
            keyword: WKT keyword or element name at fault
            offset: Character offset in the WKT text, if known
            details: Technical details about the parsing failure
            suggestions: List of suggestions for fixing the text
        """
        error_details = details or {}
        if keyword:
            error_details["keyword"] = keyword
        if offset is not None:
            error_details["offset"] = offset

        default_suggestions = [
            "Verify the text is legacy OGC WKT (GEOGCS or PROJCS)",
            "Check for unbalanced brackets or missing commas",
        ]

        super().__init__(
            message=message,
            error_code="PARSE_ERROR",
            details=error_details,
            suggestions=suggestions or default_suggestions,
        )
        self.keyword = keyword
        self.offset = offset


class DefinitionNotFoundError(MeridianException):
    """
    Raised when no definition is available for a CRS key.

    Retriable once a definition is registered or supplied directly.
    """

    def __init__(
        self,
        authority: str,
        code: Code,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize DefinitionNotFoundError.

        Args:
            authority: Authority of the missing definition
            code: Code of the missing definition
            message: Optional override of the default message
            details: Technical details about the lookup
        """
        error_details = details or {}
        error_details["authority"] = authority
        error_details["code"] = str(code)

        super().__init__(
            message=message or f"No projection definition found for {authority}:{code}",
            error_code="DEFINITION_NOT_FOUND",
            details=error_details,
            suggestions=[
                "Register the definition with DefinitionRegistry.set_projection",
                "Pass the definition directly to get_projection",
            ],
        )
        self.authority = authority
        self.code = str(code)


class BuildError(MeridianException):
    """
    Raised when the math provider rejects a definition.

    Used for unknown projection names and unrecognized parameters.
    Nothing is cached for the failed key.
    """

    def __init__(
        self,
        message: str,
        authority: Optional[str] = None,
        code: Optional[Code] = None,
        parameter: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize BuildError.

        Args:
            message: User-friendly error message
            authority: Authority of the CRS being built
            code: Code of the CRS being built
            parameter: Parameter the provider rejected
            details: Technical details about the build failure
            suggestions: List of suggestions for fixing the definition
        """
        error_details = details or {}
        if authority is not None:
            error_details["authority"] = authority
        if code is not None:
            error_details["code"] = str(code)
        if parameter:
            error_details["parameter"] = parameter

        super().__init__(
            message=message,
            error_code="BUILD_ERROR",
            details=error_details,
            suggestions=suggestions or ["Check the projection name and parameter flags"],
        )
        self.authority = authority
        self.code = None if code is None else str(code)
        self.parameter = parameter


class TransformationError(MeridianException):
    """Raised when coordinates cannot be transformed between two CRS."""

    def __init__(
        self,
        message: str,
        source_crs: Optional[str] = None,
        target_crs: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize TransformationError.

        Args:
            message: User-friendly error message
            source_crs: Source coordinate reference system
            target_crs: Target coordinate reference system
            details: Technical details about the failure
        """
        error_details = details or {}
        if source_crs:
            error_details["source_crs"] = source_crs
        if target_crs:
            error_details["target_crs"] = target_crs

        super().__init__(
            message=message,
            error_code="TRANSFORMATION_ERROR",
            details=error_details,
            suggestions=["Ensure coordinates lie within both CRS domains"],
        )


class ConfigurationError(MeridianException):
    """
    Raised when configuration or packaged data is invalid.

    Used for unreadable built-in definition tables and invalid settings.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize ConfigurationError.

        Args:
            message: User-friendly error message
            config_key: Configuration key or resource that is invalid
            details: Technical details about the configuration error
        """
        error_details = details or {}
        if config_key:
            error_details["config_key"] = config_key

        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details=error_details,
            suggestions=[
                "Check MERIDIAN_* environment variables",
                "Verify the built-in definition files are valid JSON",
            ],
        )
