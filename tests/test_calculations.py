"""Tests for VAT, commission and profit calculations."""

from decimal import Decimal

import pytest

from travel_ledger.domain.booking.calculations import (
    calculate_booking_financials,
    calculate_commissions,
    calculate_vat,
    calculate_vat_on_profit,
    convert_to_base,
    money,
    resolve_commission_rate,
    vat_regime,
)
from travel_ledger.domain.booking.enums import RateSource, ServiceType, VATRegime

VAT_RATE = Decimal("5")


def test_uae_hotel_extracts_vat_before_commission():
    """Test the UAE inclusive regime on a hotel booking."""
    result = calculate_booking_financials(
        sale=Decimal("1050"),
        cost=Decimal("500"),
        is_uae=True,
        vat_rate=VAT_RATE,
        service_type=ServiceType.HOTEL,
        agent_rate=Decimal("10"),
        cs_rate=Decimal("5"),
    )

    assert result.regime == VATRegime.UAE_INCLUSIVE
    assert result.net_before_vat == Decimal("1000.00")
    assert result.vat_amount == Decimal("50.00")
    assert result.gross_profit == Decimal("500.00")
    assert result.agent_commission == Decimal("50.00")
    assert result.cs_commission == Decimal("25.00")
    assert result.total_commission == Decimal("75.00")
    assert result.profit_after_commission == Decimal("425.00")
    assert result.net_profit == Decimal("425.00")
    assert result.total_with_vat == Decimal("1050.00")


def test_uae_flight_charges_vat_on_profit():
    """Test the UAE flight regime: VAT on profit after commission."""
    result = calculate_booking_financials(
        sale=Decimal("1000"),
        cost=Decimal("800"),
        is_uae=True,
        vat_rate=VAT_RATE,
        service_type=ServiceType.FLIGHT,
        agent_rate=Decimal("10"),
    )

    assert result.regime == VATRegime.UAE_FLIGHT_MARGIN
    assert result.net_before_vat == Decimal("1000.00")
    assert result.gross_profit == Decimal("200.00")
    assert result.agent_commission == Decimal("20.00")
    assert result.cs_commission == Decimal("0.00")
    assert result.profit_after_commission == Decimal("180.00")
    assert result.vat_amount == Decimal("9.00")
    assert result.net_profit == Decimal("171.00")
    assert result.total_with_vat == Decimal("1000.00")


def test_non_uae_adds_vat_on_profit_to_total():
    """Test the non-UAE regime: VAT on profit, added on top of the sale."""
    result = calculate_booking_financials(
        sale=Decimal("1000"),
        cost=Decimal("600"),
        is_uae=False,
        vat_rate=VAT_RATE,
        service_type=ServiceType.HOTEL,
        agent_rate=Decimal("5"),
    )

    assert result.regime == VATRegime.NON_UAE_MARGIN
    assert result.gross_profit == Decimal("400.00")
    assert result.agent_commission == Decimal("20.00")
    assert result.profit_after_commission == Decimal("380.00")
    assert result.vat_amount == Decimal("19.00")
    assert result.net_profit == Decimal("361.00")
    assert result.total_with_vat == Decimal("1019.00")


def test_not_vat_applicable_carries_no_vat():
    result = calculate_booking_financials(
        sale=Decimal("1000"),
        cost=Decimal("600"),
        is_uae=True,
        vat_rate=VAT_RATE,
        service_type=ServiceType.HOTEL,
        agent_rate=Decimal("40"),
        vat_applicable=False,
    )

    assert result.regime == VATRegime.NONE
    assert result.net_before_vat == Decimal("1000.00")
    assert result.vat_amount == Decimal("0.00")
    assert result.agent_commission == Decimal("160.00")
    assert result.net_profit == Decimal("240.00")
    assert result.total_with_vat == Decimal("1000.00")


def test_loss_gives_negative_vat_on_profit():
    """Test that VAT on profit follows the margin formula for a loss."""
    result = calculate_booking_financials(
        sale=Decimal("500"),
        cost=Decimal("700"),
        is_uae=False,
        vat_rate=VAT_RATE,
        service_type=ServiceType.VISA,
    )

    assert result.gross_profit == Decimal("-200.00")
    assert result.profit_after_commission == Decimal("-200.00")
    assert result.vat_amount == Decimal("-10.00")
    assert result.net_profit == Decimal("-190.00")
    assert calculate_vat_on_profit(Decimal("-100"), VAT_RATE) == Decimal("-5.00")
    assert calculate_vat_on_profit(Decimal("0"), VAT_RATE) == Decimal("0.00")


def test_non_uae_hotel_loss_net_profit():
    result = calculate_booking_financials(
        sale=Decimal("1000"),
        cost=Decimal("1100"),
        is_uae=False,
        vat_rate=VAT_RATE,
        service_type=ServiceType.HOTEL,
    )

    assert result.vat_amount == Decimal("-5.00")
    assert result.net_profit == Decimal("-95.00")
    assert result.net_profit == result.profit_after_commission - result.vat_amount


def test_vat_extraction_rounds_half_up():
    vat = calculate_vat(
        sale=Decimal("100"),
        cost=Decimal("0"),
        is_uae=True,
        vat_rate=VAT_RATE,
        service_type=ServiceType.VISA,
    )

    # 100 / 1.05 = 95.238...
    assert vat.net_before_vat == Decimal("95.24")
    assert vat.vat_amount == Decimal("4.76")
    assert vat.net_before_vat + vat.vat_amount == Decimal("100.00")


def test_commissions_rounded_individually():
    result = calculate_commissions(Decimal("333.33"), Decimal("7.5"), Decimal("2.5"))

    assert result.agent_commission == Decimal("25.00")
    assert result.cs_commission == Decimal("8.33")
    assert result.total_commission == Decimal("33.33")
    assert result.profit_after_commission == Decimal("300.00")


@pytest.mark.parametrize(
    "is_uae,service_type,vat_applicable,expected",
    [
        (True, ServiceType.HOTEL, True, VATRegime.UAE_INCLUSIVE),
        (True, ServiceType.FLIGHT, True, VATRegime.UAE_FLIGHT_MARGIN),
        (False, ServiceType.FLIGHT, True, VATRegime.NON_UAE_MARGIN),
        (False, ServiceType.HOTEL, False, VATRegime.NONE),
    ],
)
def test_vat_regime_selection(is_uae, service_type, vat_applicable, expected):
    assert vat_regime(is_uae, service_type, vat_applicable) == expected


def test_explicit_zero_rate_wins_over_employee_default():
    """Test that an explicit 0% is not replaced by the employee default."""
    assert resolve_commission_rate(Decimal("0"), Decimal("10")) == (Decimal("0"), RateSource.EXPLICIT)
    assert resolve_commission_rate(None, Decimal("10")) == (Decimal("10"), RateSource.EMPLOYEE_DEFAULT)
    assert resolve_commission_rate(None, None) == (Decimal("0"), RateSource.NONE)


def test_convert_to_base():
    assert convert_to_base(Decimal("100"), Decimal("3.6725")) == Decimal("367.25")
    assert convert_to_base(Decimal("10.005"), Decimal("1")) == Decimal("10.01")
    assert money("2.675") == Decimal("2.68")
