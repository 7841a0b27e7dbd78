from fastapi import HTTPException, status


# ============================================================================
# Domain errors (raised by services, translated to HTTP by routers)
# ============================================================================

class StoreMapError(Exception):
    """Base class for store map service errors"""
    pass


class UpstreamError(StoreMapError):
    """Raised when the inventory API or the geocoder call fails"""
    pass


class ConfigurationError(UpstreamError):
    """Raised when an upstream API cannot be called because its credential is missing"""
    pass


class PersistenceError(StoreMapError):
    """Raised when a storage operation fails"""
    pass


class SyncInProgressError(StoreMapError):
    """Raised when another store sync already holds the lock for the same scope"""
    pass


# ============================================================================
# HTTP errors
# ============================================================================

class AuthenticationError(HTTPException):
    """Raised when authentication fails"""
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class NotFoundError(HTTPException):
    """Raised when resource not found"""
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    """Raised when resource is busy or already exists"""
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ValidationError(HTTPException):
    """Raised when validation fails"""
    def __init__(self, detail: str = "Validation error"):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class UpstreamServiceError(HTTPException):
    """Raised when an upstream API needed to answer the request failed"""
    def __init__(self, detail: str = "Upstream service error", status_code: int = status.HTTP_502_BAD_GATEWAY):
        super().__init__(status_code=status_code, detail=detail)


class DatabaseUnavailableError(HTTPException):
    """Raised when a storage failure prevents answering the request"""
    def __init__(self, error: Exception):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Database error: {error}")
