"""Currency -- catalog of supported currencies and display formatting."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """A currency a business or account may be denominated in."""

    code: str
    name: str
    symbol: str
    decimal_places: int = 2

    @property
    def quantize_string(self) -> str:
        """String for Decimal.quantize() to round to this currency's precision."""
        if self.decimal_places == 0:
            return "1"
        return "0." + "0" * self.decimal_places

    def format_amount(self, amount: Decimal) -> str:
        """
        Render ``amount`` for display, e.g. ``$1,234.50`` or ``-¥1,500``.

        Display only: the stored value is never rounded.
        """
        quantized = amount.quantize(Decimal(self.quantize_string), rounding=ROUND_HALF_UP)
        sign = "-" if quantized < 0 else ""
        return f"{sign}{self.symbol}{abs(quantized):,}"


class CurrencyCatalog:
    """Static lookup of the currencies the application supports."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        "USD": CurrencyInfo("USD", "US Dollar", "$"),
        "EUR": CurrencyInfo("EUR", "Euro", "€"),
        "GBP": CurrencyInfo("GBP", "British Pound", "£"),
        "AED": CurrencyInfo("AED", "UAE Dirham", "د.إ"),
        "SAR": CurrencyInfo("SAR", "Saudi Riyal", "ر.س"),
        "INR": CurrencyInfo("INR", "Indian Rupee", "₹"),
        "CAD": CurrencyInfo("CAD", "Canadian Dollar", "C$"),
        "AUD": CurrencyInfo("AUD", "Australian Dollar", "A$"),
        "JPY": CurrencyInfo("JPY", "Japanese Yen", "¥", 0),
        "CHF": CurrencyInfo("CHF", "Swiss Franc", "Fr"),
    }

    @classmethod
    def get(cls, code: str) -> CurrencyInfo | None:
        return cls._CURRENCIES.get(code.upper())

    @classmethod
    def is_supported(cls, code: str) -> bool:
        return code.upper() in cls._CURRENCIES

    @classmethod
    def all_codes(cls) -> list[str]:
        return list(cls._CURRENCIES)

    @classmethod
    def all(cls) -> list[CurrencyInfo]:
        return list(cls._CURRENCIES.values())

    @classmethod
    def format_amount(cls, amount: Decimal, code: str) -> str:
        """Format with the currency's symbol, falling back to ``CODE amount``."""
        info = cls.get(code)
        if info is None:
            return f"{code} {amount}"
        return info.format_amount(amount)
