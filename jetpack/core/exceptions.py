"""
Exception Taxonomy

Structured exceptions raised by the storage pipeline and the messaging
collaborator. Every exception carries a status-like code, the current
operation id and, where relevant, the stage that failed.
"""

from typing import Optional, Dict, Any

from jetpack.core.logging import operation_id_var


class JetpackBaseException(Exception):
    """Base exception for the Jetpack services client."""
    
    def __init__(
        self,
        message: str,
        code: int = 500,
        operation_id: Optional[str] = None,
        stage: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.operation_id = operation_id or operation_id_var.get()
        self.stage = stage
        self.details = details or {}
        super().__init__(self.message)
    
    def to_dict(self) -> Dict[str, Any]:
        """Structured representation, suitable for logging or API responses."""
        return {
            "error": self.message,
            "code": self.code,
            "operation_id": self.operation_id,
            "stage": self.stage,
            "details": self.details,
        }


class ValidationError(JetpackBaseException):
    """Raised when caller input is invalid."""
    
    def __init__(self, message: str, **kwargs):
        super().__init__(message, code=400, **kwargs)


class StorageConfigurationError(JetpackBaseException):
    """Raised on first use of a storage backend that has no credentials."""
    
    def __init__(self, message: str, backend: str, **kwargs):
        super().__init__(message, code=500, **kwargs)
        self.details["backend"] = backend


class StorageError(JetpackBaseException):
    """Raised when an upload or delete fails at the backend."""
    
    def __init__(self, message: str, container: Optional[str] = None, key: Optional[str] = None, **kwargs):
        super().__init__(message, code=502, **kwargs)
        self.details["container"] = container
        self.details["key"] = key


class ImageProcessingError(JetpackBaseException):
    """Raised when image data cannot be decoded, oriented or rendered."""
    
    def __init__(self, message: str, stage: str, **kwargs):
        super().__init__(message, code=422, stage=stage, **kwargs)


class ExternalAPIError(JetpackBaseException):
    """Raised when an external API call fails (e.g., SendGrid)."""
    
    def __init__(self, message: str, service: str, http_status: Optional[int] = None, **kwargs):
        super().__init__(message, code=502, **kwargs)
        self.details["service"] = service
        self.details["http_status"] = http_status
