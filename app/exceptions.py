"""Domain-specific exceptions with user-ready messages for the outward flow."""


class BusinessLogicException(Exception):
    """Base exception class for business logic errors.

    All business logic exceptions include user-ready messages that can be
    displayed directly in the UI without client-side message construction.
    ``retryable`` tells the caller whether repeating the same call after a
    refresh can succeed, as opposed to needing different input.
    """

    retryable: bool = False

    def __init__(self, message: str, error_code: str) -> None:
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class RecordNotFoundException(BusinessLogicException):
    """Exception raised when a requested record is not found."""

    def __init__(self, resource_type: str, identifier: str | int) -> None:
        message = f"{resource_type} {identifier} was not found"
        super().__init__(message, error_code="RECORD_NOT_FOUND")


class ValidationException(BusinessLogicException):
    """Exception raised when input is malformed beyond schema validation."""

    def __init__(self, field: str, cause: str) -> None:
        self.field = field
        message = f"Invalid {field}: {cause}"
        super().__init__(message, error_code="VALIDATION_FAILED")


class ResourceConflictException(BusinessLogicException):
    """Exception raised when attempting to create a resource that already exists."""

    retryable = True

    def __init__(self, resource_type: str, identifier: str | int) -> None:
        message = f"A {resource_type.lower()} with {identifier} already exists"
        super().__init__(message, error_code="RESOURCE_CONFLICT")


class ApprovalConflictException(BusinessLogicException):
    """Exception raised when a decision targets an approval level that is no longer open."""

    retryable = True

    def __init__(self, request_id: int, level: int) -> None:
        self.request_id = request_id
        self.level = level
        message = (
            f"Approval level {level} of request {request_id} has already been decided"
        )
        super().__init__(message, error_code="CONFLICT")


class InsufficientStockException(BusinessLogicException):
    """Exception raised when a store cannot cover a reservation."""

    retryable = True

    def __init__(self, requested: int, available: int, location: str = "") -> None:
        self.requested = requested
        self.available = available
        location_text = f" at {location}" if location else ""
        message = f"Not enough stock available{location_text} (requested {requested}, have {available})"
        super().__init__(message, error_code="STOCK_UNAVAILABLE")


class ReservationExpiredException(BusinessLogicException):
    """Exception raised when consuming a reservation past its expiry."""

    retryable = True

    def __init__(self, reservation_id: int) -> None:
        self.reservation_id = reservation_id
        message = f"Reservation {reservation_id} has expired and must be placed again"
        super().__init__(message, error_code="RESERVATION_EXPIRED")


class ReservationRequiredException(BusinessLogicException):
    """Exception raised when issuing a request that holds no usable reservation."""

    retryable = True

    def __init__(self, request_id: int, store_id: int) -> None:
        message = (
            f"Request {request_id} has no active reservation at store {store_id} "
            "covering the requested quantity"
        )
        super().__init__(message, error_code="RESERVATION_REQUIRED")


class LimitExceededException(BusinessLogicException):
    """Exception raised when a technician limit denies an operation."""

    def __init__(self, scope: str, ceiling: str, limit_value: object, attempted_value: object) -> None:
        self.scope = scope
        self.ceiling = ceiling
        message = (
            f"Technician {scope} limit {ceiling} of {limit_value} would be exceeded "
            f"(attempted {attempted_value})"
        )
        super().__init__(message, error_code="LIMIT_EXCEEDED")


class InvalidTransitionException(BusinessLogicException):
    """Exception raised when a request's status does not permit an operation."""

    def __init__(self, request_id: int, status: str, operation: str) -> None:
        self.request_id = request_id
        self.status = status
        self.operation = operation
        message = f"Cannot {operation} request {request_id} because it is {status}"
        super().__init__(message, error_code="INVALID_TRANSITION")


class UnauthorizedApproverException(BusinessLogicException):
    """Exception raised when an approver lacks authority for a level."""

    def __init__(self, approver_id: str, level: int) -> None:
        message = f"Approver {approver_id} is not authorized to decide level {level}"
        super().__init__(message, error_code="APPROVER_NOT_AUTHORIZED")


class InvalidOperationException(BusinessLogicException):
    """Exception raised when an operation cannot be performed due to business rules."""

    def __init__(self, operation: str, cause: str) -> None:
        self.operation = operation
        self.cause = cause
        message = f"Cannot {operation} because {cause}"
        super().__init__(message, error_code="INVALID_OPERATION")


class ReservationNotActiveException(BusinessLogicException):
    """Exception raised when a reservation was released or consumed concurrently."""

    retryable = True

    def __init__(self, reservation_id: int, release_reason: str | None) -> None:
        self.reservation_id = reservation_id
        reason_text = f" ({release_reason})" if release_reason else ""
        message = f"Reservation {reservation_id} is no longer active{reason_text}"
        super().__init__(message, error_code="CONFLICT")
