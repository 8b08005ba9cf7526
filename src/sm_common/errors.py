"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Identity
  2xxx: Offer
  3xxx: Negotiation
  4xxx: Payment
  5xxx: Service request
  9xxx: System

Every lifecycle outcome the caller can expect (validation, illegal state,
permission, optimistic-concurrency loss, idempotency guards) is an AppError
subclass. Anything else is an unexpected fault.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- Shared categories ---

class ValidationError(AppError):
    """Malformed amount or schedule. Never retried automatically."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 422)


class InvalidStateError(AppError):
    def __init__(self, message: str, code: int = 9003) -> None:
        super().__init__(code, message, 409)


class InvalidTransitionError(AppError):
    def __init__(self, current: str, target: str, code: int = 9004) -> None:
        super().__init__(code, f"Transition {current} -> {target} is not allowed", 409)
        self.current = current
        self.target = target


class ForbiddenError(AppError):
    def __init__(self, message: str = "Forbidden", code: int = 9005) -> None:
        super().__init__(code, message, 403)


class ConflictError(AppError):
    """Optimistic-concurrency loss. Safe to retry after re-reading."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(
            9006, f"{entity} {entity_id} was modified concurrently, re-read and retry", 409
        )


# --- 1xxx: Identity ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


# --- 2xxx: Offer ---

class ScheduleError(ValidationError):
    pass


class NegativeComponentError(ScheduleError):
    def __init__(self, component: str, value: int) -> None:
        super().__init__(2001, f"Payment schedule {component} must not be negative, got {value}")
        self.component = component


class OvercommittedScheduleError(ScheduleError):
    def __init__(self, total: int, price: int) -> None:
        super().__init__(
            2002,
            f"Payment schedule total {total} cents exceeds offer price {price} cents",
        )
        self.total = total
        self.price = price


class InvalidAmountError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(2003, f"Invalid amount: {detail}")


class OfferNotFoundError(AppError):
    def __init__(self, offer_id: str) -> None:
        super().__init__(2004, f"Offer not found: {offer_id}", 404)


class DuplicateOfferError(AppError):
    def __init__(self, request_id: str, provider_id: str) -> None:
        super().__init__(
            2005,
            f"Provider {provider_id} already has an active offer on request {request_id}",
            409,
        )


class OfferNotEditableError(ForbiddenError):
    def __init__(self, offer_id: str, status: str) -> None:
        super().__init__(f"Offer {offer_id} in status {status} cannot be edited", 2006)


# --- 3xxx: Negotiation ---

class NegotiationClosedError(InvalidStateError):
    def __init__(self, offer_id: str, status: str) -> None:
        super().__init__(f"Offer {offer_id} in status {status} is closed to negotiation", 3001)


# --- 4xxx: Payment ---

class PaymentNotFoundError(AppError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(4001, f"Payment not found: {payment_id}", 404)


class PaymentAlreadyExistsError(AppError):
    def __init__(self, offer_id: str) -> None:
        super().__init__(4002, f"Payment already exists for offer {offer_id}", 409)


class ExceedsAmountError(AppError):
    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            4003,
            f"Refund amount {requested} cents exceeds payment amount {available} cents",
            422,
        )


class DuplicateRefundRequestError(AppError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(4004, f"Payment {payment_id} already has an outstanding refund request", 409)


# --- 5xxx: Service request ---

class ServiceRequestNotFoundError(AppError):
    def __init__(self, request_id: str) -> None:
        super().__init__(5001, f"Service request not found: {request_id}", 404)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
