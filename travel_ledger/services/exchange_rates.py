"""Exchange-rate lookup used to convert booking amounts to the base currency."""

from decimal import Decimal
from typing import Dict, Protocol

import structlog
from sqlalchemy.orm import Session

from travel_ledger.core.config import Settings, get_settings
from travel_ledger.domain.exceptions import ExchangeRateUnavailableError
from travel_ledger.models.reference import Currency

logger = structlog.get_logger()

ONE = Decimal("1")


class ExchangeRateProvider(Protocol):
    """Anything that can answer "how much base currency is one unit of X"."""

    def rate_to_base(self, currency_code: str) -> Decimal:
        ...


class DatabaseExchangeRateProvider:
    """Rates from the ``currencies`` table.

    Unknown currencies fall back to 1 with a warning, unless
    ``strict_exchange_rates`` is enabled.
    """

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    def rate_to_base(self, currency_code: str) -> Decimal:
        code = (currency_code or self.settings.base_currency).upper()
        if code == self.settings.base_currency.upper():
            return ONE

        currency = self.db.query(Currency).filter(
            Currency.code == code,
            Currency.is_active == True
        ).first()

        if currency and currency.rate_to_base:
            return Decimal(currency.rate_to_base)

        if self.settings.strict_exchange_rates:
            raise ExchangeRateUnavailableError(code)

        logger.warning(
            "Exchange rate missing, using 1.0",
            currency=code,
            base_currency=self.settings.base_currency
        )
        return ONE


class StaticExchangeRateProvider:
    """Fixed rate table, for callers that already know their rates."""

    def __init__(self, rates: Dict[str, Decimal], base_currency: str = "AED"):
        self.rates = {code.upper(): Decimal(str(rate)) for code, rate in rates.items()}
        self.base_currency = base_currency.upper()

    def rate_to_base(self, currency_code: str) -> Decimal:
        code = currency_code.upper()
        if code == self.base_currency:
            return ONE
        if code not in self.rates:
            raise ExchangeRateUnavailableError(code)
        return self.rates[code]
