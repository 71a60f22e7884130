# File: shadow_translate/core/exceptions.py

from typing import Dict, Any, List, Optional
from datetime import datetime


class ShadowTranslateException(Exception):
    """Base exception for all shadow translation errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize a shadow translation exception.

        Args:
            message: Human-readable error message
            code: Optional machine-processable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or "GENERIC_ERROR"
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for API responses.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "timestamp": datetime.now().isoformat(),
        }


# Configuration exceptions
class ConfigurationException(ShadowTranslateException):
    """Raised when a behavior is attached or used with an invalid configuration."""

    CODE_PREFIX = "CONFIG_"

    def __init__(
        self,
        message: str,
        option: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        error_details = details or {}
        if option:
            error_details["option"] = option
        super().__init__(
            message, error_code or f"{self.CODE_PREFIX}001", error_details
        )


class UnknownTranslationFieldException(ConfigurationException):
    """Raised when explicitly configured fields are missing from the translation table."""

    def __init__(self, table_name: str, fields: List[str]):
        super().__init__(
            f"Translation table '{table_name}' has no column(s): {', '.join(fields)}",
            option="fields",
            details={"translation_table": table_name, "missing_fields": fields},
            error_code=f"{self.CODE_PREFIX}002",
        )


class BehaviorConflictException(ConfigurationException):
    """Raised when a second behavior is attached for an already occupied role."""

    def __init__(self, role: str, existing: str, requested: str):
        super().__init__(
            f"Cannot attach '{requested}': the '{role}' role is already "
            f"provided by '{existing}'",
            details={"role": role, "existing": existing, "requested": requested},
            error_code=f"{self.CODE_PREFIX}003",
        )


# Query exceptions
class QueryException(ShadowTranslateException):
    """Base exception for query building and compilation errors."""

    CODE_PREFIX = "QUERY_"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, f"{self.CODE_PREFIX}001", details or {})


class UnknownFieldException(QueryException):
    """Raised when a field reference cannot be resolved against a known alias."""

    def __init__(self, alias: str, field: str):
        super().__init__(f"Unknown field '{field}' for alias '{alias}'",
                         {"alias": alias, "field": field})
        self.code = f"{self.CODE_PREFIX}002"


# Domain exceptions
class EntityNotFoundException(ShadowTranslateException):
    """Raised when a requested entity does not exist."""

    CODE_PREFIX = "DOMAIN_"

    def __init__(self, entity_type: str, entity_id: Any = None):
        message = (
            f"{entity_type} with ID {entity_id} not found"
            if entity_id is not None
            else f"No {entity_type} record matched the query"
        )
        super().__init__(
            message,
            f"{self.CODE_PREFIX}001",
            {"entity_type": entity_type, "entity_id": entity_id},
        )


# Validation exceptions
class ValidationException(ShadowTranslateException):
    """Raised when input validation fails."""

    def __init__(
        self, message: str, validation_errors: Optional[Dict[str, List[str]]] = None
    ):
        super().__init__(
            message, "VALIDATION_001", {"validation_errors": validation_errors or {}}
        )


class DatabaseException(ShadowTranslateException):
    """
    Exception raised for database-related errors.
    """

    CODE_PREFIX = "DATABASE_"

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        entity_type: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if query:
            error_details["query"] = query
        if entity_type:
            error_details["entity_type"] = entity_type
        code = error_code or f"{self.CODE_PREFIX}001"
        super().__init__(message=message, code=code, details=error_details)
