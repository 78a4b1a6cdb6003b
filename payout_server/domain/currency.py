"""Fixed three-currency model: formatting, parsing and payment-platform routing."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from payout_server.domain.service_kinds import is_free_service
from payout_server.errors import ValidationError


class Currency(str, Enum):
    ARS = "ARS"
    USD = "USD"
    EUR = "EUR"


class Platform(str, Enum):
    MERCADOPAGO = "mercadopago"
    PAYPAL = "paypal"


# Canonical order for selectors and report blocks.
CURRENCY_ORDER = (Currency.USD, Currency.ARS, Currency.EUR)

CURRENCY_SYMBOLS = {
    Currency.USD: "$",
    Currency.ARS: "$",
    Currency.EUR: "€",
}

CURRENCY_NAMES = {
    Currency.USD: "Dólares",
    Currency.ARS: "Pesos Argentinos",
    Currency.EUR: "Euros",
}

CURRENCY_DECIMALS = {
    Currency.USD: 2,
    Currency.ARS: 0,
    Currency.EUR: 2,
}

# (thousands separator, decimal separator) as rendered by en-US, es-AR, de-DE
CURRENCY_SEPARATORS = {
    Currency.USD: (",", "."),
    Currency.ARS: (".", ","),
    Currency.EUR: (".", ","),
}

PLATFORM_BY_CURRENCY = {
    Currency.ARS: Platform.MERCADOPAGO,
    Currency.USD: Platform.PAYPAL,
    Currency.EUR: Platform.PAYPAL,
}

PLATFORM_KEYS = {
    Currency.ARS: "mercadopago",
    Currency.USD: "paypal_usd",
    Currency.EUR: "paypal_eur",
}
CURRENCY_BY_PLATFORM_KEY = {key: currency for currency, key in PLATFORM_KEYS.items()}

FREE_LABEL = "Gratis"

_COMPACT_STEPS = (
    (Decimal("1000000000"), "B"),
    (Decimal("1000000"), "M"),
    (Decimal("1000"), "K"),
)


def to_currency(value) -> Currency:
    """Coerce a code (any case) to :class:`Currency`."""
    if isinstance(value, Currency):
        return value
    try:
        return Currency(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Moneda no soportada: {value!r}") from None


def platform_for(currency) -> Platform:
    return PLATFORM_BY_CURRENCY[to_currency(currency)]


def platform_key(currency) -> str:
    return PLATFORM_KEYS[to_currency(currency)]


def to_decimal(amount) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        return Decimal(repr(amount))
    return Decimal(amount)


def _localize(number: str, currency: Currency) -> str:
    group, decimal = CURRENCY_SEPARATORS[currency]
    # number comes from "{:,.Nf}" i.e. en-US separators
    return number.replace(",", "\0").replace(".", decimal).replace("\0", group)


def format_currency(amount, currency=Currency.USD) -> str:
    """Render ``amount`` the way the dashboard shows money.

    >>> format_currency(Decimal("1234.5"), "USD")
    '$1,234.50 USD'
    >>> format_currency(150000, "ARS")
    '$150.000 ARS'
    >>> format_currency(Decimal("99.9"), "EUR")
    '€99,90 EUR'
    """
    currency = to_currency(currency)
    try:
        value = to_decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        return "-"
    if not value.is_finite():
        return "-"

    decimals = CURRENCY_DECIMALS[currency]
    quantum = Decimal(1).scaleb(-decimals)
    value = value.quantize(quantum, rounding=ROUND_HALF_UP)
    number = _localize(f"{value:,.{decimals}f}", currency)
    return f"{CURRENCY_SYMBOLS[currency]}{number} {currency.value}"


def format_currency_compact(amount, currency=Currency.USD) -> str:
    """Short form for large totals, e.g. ``$1,45M ARS`` or ``$2.5K USD``."""
    currency = to_currency(currency)
    try:
        value = to_decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        return "-"
    if not value.is_finite():
        return "-"

    suffix = ""
    for step, label in _COMPACT_STEPS:
        if abs(value) >= step:
            value = value / step
            suffix = label
            break
    value = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    number = f"{value:,.2f}".rstrip("0").rstrip(".")
    number = _localize(number, currency)
    return f"{CURRENCY_SYMBOLS[currency]}{number}{suffix} {currency.value}"


def parse_currency_amount(text: str, currency=Currency.USD) -> Decimal:
    """Inverse of :func:`format_currency` for operator input."""
    currency = to_currency(currency)
    group, decimal = CURRENCY_SEPARATORS[currency]

    raw = (text or "").strip()
    raw = raw.replace(currency.value, "").replace(CURRENCY_SYMBOLS[currency], "")
    raw = re.sub(r"\s+", "", raw)
    raw = raw.replace(group, "").replace(decimal, ".")
    if not re.fullmatch(r"-?\d+(\.\d+)?", raw):
        raise ValidationError(f"Monto inválido: {text!r}")
    return Decimal(raw)


def format_service_price(service_kind: str, amount, currency=Currency.USD) -> str:
    """Display price for a service; promotional kinds show as free."""
    if is_free_service(service_kind):
        return FREE_LABEL
    return format_currency(amount, currency)
