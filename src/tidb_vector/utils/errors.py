"""Custom exception classes for the vector store engine."""

from typing import Any, Dict, Optional


class VectorStoreException(Exception):
    """Base exception for all vector store errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary (for structured logs / API payloads)."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "details": self.details,
            }
        }


class ConfigurationError(VectorStoreException):
    """Exception raised for missing or invalid required settings."""

    def __init__(
        self,
        message: str = "Invalid configuration",
        setting: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if setting:
            error_details["setting"] = setting
        super().__init__(
            message=message,
            code="CONFIGURATION_ERROR",
            details=error_details,
        )


class ValidationError(VectorStoreException):
    """Exception raised for per-call validation failures (raised before any write)."""

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if errors:
            error_details["validation_errors"] = errors
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details=error_details,
        )


class ProviderError(VectorStoreException):
    """Exception raised when an embedding or completion provider call fails."""

    def __init__(
        self,
        message: str = "Provider call failed",
        code: str = "PROVIDER_ERROR",
        model: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if model:
            error_details["model"] = model
        super().__init__(
            message=message,
            code=code,
            details=error_details,
        )


class EmbeddingError(ProviderError):
    """Exception raised for embedding generation errors."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        model: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="EMBEDDING_ERROR",
            model=model,
            details=details,
        )


class CompletionError(ProviderError):
    """Exception raised for text completion errors."""

    def __init__(
        self,
        message: str = "Text completion failed",
        model: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="COMPLETION_ERROR",
            model=model,
            details=details,
        )


class StorageError(VectorStoreException):
    """Exception raised for store connection or statement failures."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="STORAGE_ERROR",
            details=details,
        )
