"""Booking domain module."""

from .enums import BookingStatus, ServiceType, VATRegime, RateSource

__all__ = [
    "BookingStatus",
    "ServiceType",
    "VATRegime",
    "RateSource",
]
