"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class Role(str, Enum):
    SEEKER = "seeker"
    PROVIDER = "provider"
    ADMIN = "admin"


class ServiceRequestStatus(str, Enum):
    OPEN = "open"
    NEGOTIATING = "negotiating"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OfferStatus(str, Enum):
    PENDING = "pending"
    NEGOTIATING = "negotiating"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    AGREED = "agreed"
    COMPLETED = "completed"
    DISPUTED = "disputed"
    REFUNDED = "refunded"


class RefundStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentMethod(str, Enum):
    STRIPE = "stripe"
    COD = "cod"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    VODAFONE_CASH = "vodafone_cash"
    MEEZA = "meeza"
    FAWRY = "fawry"


class PaymentGateway(str, Enum):
    STRIPE = "stripe"
    MANUAL = "manual"
    VODAFONE_CASH_API = "vodafone_cash_api"
    MEEZA_API = "meeza_api"
    FAWRY_API = "fawry_api"


class EventName(str, Enum):
    """Notifier event names. Subscribers must handle duplicates."""

    OFFER_CREATED = "offer:created"
    OFFER_UPDATED = "offer:updated"
    OFFER_ACCEPTED = "offer:accepted"
    OFFER_REJECTED = "offer:rejected"
    OFFER_EXPIRED = "offer:expired"
    NEGOTIATION_NEW_MESSAGE = "negotiation:newMessage"
    NEGOTIATION_COUNTER_OFFER = "negotiation:counterOffer"
    PAYMENT_CREATED = "payment:created"
    PAYMENT_AGREED = "payment:agreed"
    PAYMENT_COMPLETED = "payment:completed"
    PAYMENT_FAILED = "payment:failed"
    PAYMENT_DISPUTED = "payment:disputed"
    PAYMENT_REFUNDED = "payment:refunded"
    PAYMENT_REFUND_REJECTED = "payment:refundRejected"
