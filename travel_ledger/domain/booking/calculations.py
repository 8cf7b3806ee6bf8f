"""
Tax and commission calculations for bookings.

All functions are pure and work on ``Decimal``. Every derived monetary value is
rounded to two places (ROUND_HALF_UP) where it is computed, so stored figures
add up exactly.

VAT regimes:

1. UAE, VAT-applicable, not a flight: the sale price includes VAT. VAT is
   extracted first and commissions are paid on the net margin.
2. UAE flight: VAT is charged on the profit left after commissions.
3. Non-UAE, VAT-applicable: VAT is charged on the profit left after
   commissions and added on top of the sale.

Bookings that are not VAT-applicable carry no VAT at all.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Tuple

from travel_ledger.domain.booking.enums import ServiceType, VATRegime, RateSource

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def money(value) -> Decimal:
    """Quantize to 2 decimal places, half up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(str(value))


@dataclass(frozen=True)
class VATResult:
    regime: VATRegime
    net_before_vat: Decimal
    # Extracted VAT; zero for regimes that charge VAT on profit later
    vat_amount: Decimal
    gross_profit: Decimal


@dataclass(frozen=True)
class CommissionResult:
    agent_commission: Decimal
    cs_commission: Decimal
    total_commission: Decimal
    profit_after_commission: Decimal


@dataclass(frozen=True)
class BookingFinancials:
    """Every derived figure stored on a booking."""
    regime: VATRegime
    net_before_vat: Decimal
    vat_amount: Decimal
    total_with_vat: Decimal
    gross_profit: Decimal
    agent_commission: Decimal
    cs_commission: Decimal
    total_commission: Decimal
    profit_after_commission: Decimal
    net_profit: Decimal


def vat_regime(is_uae: bool, service_type: ServiceType, vat_applicable: bool = True) -> VATRegime:
    if not vat_applicable:
        return VATRegime.NONE
    if is_uae:
        if service_type == ServiceType.FLIGHT:
            return VATRegime.UAE_FLIGHT_MARGIN
        return VATRegime.UAE_INCLUSIVE
    return VATRegime.NON_UAE_MARGIN


def calculate_vat(
    sale: Decimal,
    cost: Decimal,
    is_uae: bool,
    vat_rate: Decimal,
    service_type: ServiceType,
    vat_applicable: bool = True,
) -> VATResult:
    """
    First stage of the VAT cascade.

    Only the UAE inclusive regime extracts VAT here:
    ``net_before_vat = sale / (1 + rate / 100)`` and ``vat = sale - net_before_vat``.
    The other regimes keep the sale as net and defer VAT to
    ``calculate_vat_on_profit``.
    """
    sale = money(sale)
    cost = money(cost)
    regime = vat_regime(is_uae, service_type, vat_applicable)

    if regime == VATRegime.UAE_INCLUSIVE:
        divisor = Decimal("1") + _decimal(vat_rate) / HUNDRED
        net_before_vat = money(sale / divisor)
        vat_amount = money(sale - net_before_vat)
        gross_profit = money(net_before_vat - cost)
    else:
        net_before_vat = sale
        vat_amount = ZERO
        gross_profit = money(sale - cost)

    return VATResult(
        regime=regime,
        net_before_vat=net_before_vat,
        vat_amount=vat_amount,
        gross_profit=gross_profit,
    )


def calculate_commissions(base: Decimal, agent_rate, cs_rate) -> CommissionResult:
    """Commission amounts are ``base * rate / 100``, each rounded on its own."""
    base = money(base)
    agent_commission = money(base * _decimal(agent_rate) / HUNDRED)
    cs_commission = money(base * _decimal(cs_rate) / HUNDRED)
    total_commission = money(agent_commission + cs_commission)
    return CommissionResult(
        agent_commission=agent_commission,
        cs_commission=cs_commission,
        total_commission=total_commission,
        profit_after_commission=money(base - total_commission),
    )


def calculate_vat_on_profit(profit_after_commission: Decimal, vat_rate) -> Decimal:
    """VAT charged on margin. A loss gives a negative figure, which is never posted."""
    return money(money(profit_after_commission) * _decimal(vat_rate) / HUNDRED)


def calculate_booking_financials(
    sale: Decimal,
    cost: Decimal,
    is_uae: bool,
    vat_rate,
    service_type: ServiceType,
    agent_rate=None,
    cs_rate=None,
    vat_applicable: bool = True,
) -> BookingFinancials:
    """
    Run the whole cascade: VAT extraction, commissions, VAT on profit, net profit.

    Args:
        sale: Sale amount in base currency (VAT-inclusive for UAE bookings)
        cost: Total supplier cost in base currency
        is_uae: Whether the booking is a UAE booking
        vat_rate: VAT percentage, e.g. ``Decimal("5")``
        service_type: Service sold
        agent_rate: Booking agent commission percentage
        cs_rate: Customer service commission percentage
        vat_applicable: Whether the booking carries VAT

    Returns:
        BookingFinancials with every stored figure
    """
    vat = calculate_vat(sale, cost, is_uae, vat_rate, service_type, vat_applicable)
    commissions = calculate_commissions(vat.gross_profit, agent_rate, cs_rate)

    if vat.regime in (VATRegime.UAE_FLIGHT_MARGIN, VATRegime.NON_UAE_MARGIN):
        vat_amount = calculate_vat_on_profit(commissions.profit_after_commission, vat_rate)
        net_profit = money(commissions.profit_after_commission - vat_amount)
    else:
        vat_amount = vat.vat_amount
        net_profit = commissions.profit_after_commission

    if vat.regime == VATRegime.NON_UAE_MARGIN:
        total_with_vat = money(vat.net_before_vat + vat_amount)
    else:
        total_with_vat = money(sale)

    return BookingFinancials(
        regime=vat.regime,
        net_before_vat=vat.net_before_vat,
        vat_amount=vat_amount,
        total_with_vat=total_with_vat,
        gross_profit=vat.gross_profit,
        agent_commission=commissions.agent_commission,
        cs_commission=commissions.cs_commission,
        total_commission=commissions.total_commission,
        profit_after_commission=commissions.profit_after_commission,
        net_profit=net_profit,
    )


def resolve_commission_rate(explicit, employee_default) -> Tuple[Decimal, RateSource]:
    """
    Pick the commission rate to apply.

    An explicit rate wins whenever it is given, zero included. Otherwise the
    employee's default is used, and failing that zero.
    """
    if explicit is not None:
        return _decimal(explicit), RateSource.EXPLICIT
    if employee_default is not None:
        return _decimal(employee_default), RateSource.EMPLOYEE_DEFAULT
    return Decimal("0"), RateSource.NONE


def convert_to_base(amount: Decimal, rate) -> Decimal:
    """Convert ``amount`` with ``rate`` (units of base per unit) and round."""
    return money(_decimal(amount) * _decimal(rate))
