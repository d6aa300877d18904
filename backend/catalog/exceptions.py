"""
Movie Catalog Backend: Custom Exception Hierarchy
====================================================

What:  Application-specific exceptions for the two failure classes the API
       exposes: bad caller input and failures outside the caller's control.
How:   Each exception carries a message and an optional context dict.
       Global handlers registered in main.py turn them into JSON responses.
Who:   Raised by the service layer and the store client.

Exception Hierarchy:
    CatalogError (base)
    ├── ValidationError            → 400 Bad Request (client can fix)
    └── InternalError              → 500 Internal Server Error
        ├── DatabaseError          → 500 (store read/write failed)
        └── StoreUnavailableError  → 503 Service Unavailable (not connected)
"""

from typing import Any, Dict, Iterable, Mapping, Optional


class CatalogError(Exception):
    """
    Base exception for all catalog application errors.

    Attributes:
        message:  User-facing error description (safe to return in a response)
        context:  Debug info; returned only for ValidationError, logged otherwise
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CatalogError):
    """
    Raised when caller input fails a precondition.

    When:    Missing or empty name/year/rating on create, malformed id on delete.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "'abc' is not a valid movie id",
            "details": {"field": "id"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field

    @classmethod
    def from_errors(cls, errors: Iterable[Mapping[str, Any]]) -> "ValidationError":
        """
        Builds one ValidationError from pydantic's error list.

        Works for both pydantic.ValidationError.errors() and FastAPI's
        RequestValidationError.errors(); the "body" location prefix FastAPI
        adds is dropped, and model-level errors are reported under "body".
        """
        fields: Dict[str, str] = {}
        for err in errors:
            names = [str(p) for p in err.get("loc", ()) if p != "body"]
            # Malformed JSON is located by character offset, not field name
            if err.get("type") == "json_invalid" or not names:
                name = "body"
            else:
                name = names[-1]
            msg = str(err.get("msg", "invalid value"))
            if msg.startswith("Value error, "):
                msg = msg[len("Value error, "):]
            fields.setdefault(name, msg)

        field = next(iter(fields)) if len(fields) == 1 else None
        return cls(
            message=f"Missing or invalid fields: {', '.join(fields) or 'body'}",
            field=field,
            context={"fields": fields},
        )


class InternalError(CatalogError):
    """
    Raised when an operation fails for reasons outside caller control.

    HTTP:    500 Internal Server Error
    The response message is generic; context is logged server-side only.
    """

    def __init__(
        self,
        message: str = "An internal error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(InternalError):
    """
    Raised when a MongoDB read or write fails.

    When:    Network error mid-operation, server selection timeout, write
             concern failure, and any other pymongo.errors.PyMongoError.
    Context: the driver exception type and the operation name. The connection
             string and the driver's message never reach the client.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StoreUnavailableError(InternalError):
    """
    Raised when a request arrives while the store is not connected and a
    lazy reconnection attempt also fails.

    HTTP:    503 Service Unavailable, with Retry-After.
    """

    def __init__(
        self,
        message: str = "The movie store is not available right now. Please retry shortly.",
        retry_after: int = 5,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
