"""Booking domain enums."""

from enum import Enum as PyEnum


class BookingStatus(str, PyEnum):
    """Booking lifecycle status."""
    PENDING_REVIEW = "pending_review"
    CONFIRMED = "confirmed"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class ServiceType(str, PyEnum):
    """Travel service sold by a booking."""
    FLIGHT = "flight"
    HOTEL = "hotel"
    VISA = "visa"
    TRANSFER = "transfer"
    RENTAL_CAR = "rental_car"
    CRUISE = "cruise"
    TRAIN = "train"
    ACTIVITY = "activity"
    PACKAGE = "package"
    UMRAH = "umrah"
    OTHER = "other"


class VATRegime(str, PyEnum):
    """How VAT is derived for a booking."""
    UAE_INCLUSIVE = "uae_inclusive"  # Extracted from the sale before commission
    UAE_FLIGHT_MARGIN = "uae_flight_margin"  # On profit after commission
    NON_UAE_MARGIN = "non_uae_margin"  # On profit after commission
    NONE = "none"


# Statuses after which a booking's figures are frozen
CLOSED_STATUSES = (BookingStatus.CANCELLED, BookingStatus.REFUNDED)


class RateSource(str, PyEnum):
    """Where a commission rate came from."""
    EXPLICIT = "explicit"
    EMPLOYEE_DEFAULT = "employee_default"
    NONE = "none"  # No rate anywhere, zero used
