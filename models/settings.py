"""System settings and tax rates provided by the backend."""

from dataclasses import dataclass
from typing import Iterable, Optional

DEFAULT_VAT_RATE = 16.0
DEFAULT_CURRENCY = "KES"
DEFAULT_CURRENCY_SYMBOL = "KSH"


@dataclass
class TaxRate:
    """A configured tax rate. ``rate`` is a percentage (16 means 16%), None if unset."""

    id: int
    name: str
    rate: Optional[float] = None
    type: str = "VAT"
    description: Optional[str] = None
    is_default: bool = False
    is_active: bool = True

    @property
    def fraction(self) -> float:
        return (self.rate or 0.0) / 100


@dataclass
class SystemSettings:
    company_name: str = ""
    company_address: Optional[str] = None
    company_phone: Optional[str] = None
    company_email: Optional[str] = None
    company_tax_id: Optional[str] = None
    currency: str = DEFAULT_CURRENCY
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL
    vat_rate: Optional[float] = None
    date_format: Optional[str] = None
    timezone: Optional[str] = None


def find_default_rate(rates: Iterable[TaxRate]) -> Optional[TaxRate]:
    for rate in rates:
        if rate.is_default:
            return rate
    return None


def find_rate(rates: Iterable[TaxRate], rate_id) -> Optional[TaxRate]:
    """Find a tax rate by id; ids from forms arrive as strings."""
    if rate_id in (None, ""):
        return None
    for rate in rates:
        if str(rate.id) == str(rate_id):
            return rate
    return None
