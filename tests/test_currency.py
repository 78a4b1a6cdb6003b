import sys
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from payout_server.domain.currency import (
    CURRENCY_ORDER,
    FREE_LABEL,
    Currency,
    Platform,
    format_currency,
    format_currency_compact,
    format_service_price,
    parse_currency_amount,
    platform_for,
    platform_key,
    to_currency,
)
from payout_server.domain.service_kinds import service_category, service_name
from payout_server.errors import ValidationError


def test_format_currency_per_locale():
    assert format_currency(Decimal("1234.5"), "USD") == "$1,234.50 USD"
    assert format_currency(150000, "ARS") == "$150.000 ARS"
    assert format_currency(Decimal("99.9"), "EUR") == "€99,90 EUR"
    assert format_currency(Decimal("1234567.891"), Currency.EUR) == "€1.234.567,89 EUR"


def test_format_currency_rounds_half_up():
    assert format_currency(Decimal("2.5"), "ARS") == "$3 ARS"
    assert format_currency(Decimal("0.125"), "USD") == "$0.13 USD"


def test_format_currency_non_finite_is_dash():
    assert format_currency(float("nan"), "USD") == "-"
    assert format_currency(float("inf"), "EUR") == "-"
    assert format_currency(None, "ARS") == "-"


def test_format_currency_compact():
    assert format_currency_compact(1450000, "ARS") == "$1,45M ARS"
    assert format_currency_compact(2500, "USD") == "$2.5K USD"
    assert format_currency_compact(Decimal("999"), "USD") == "$999 USD"


def test_parse_currency_amount_reads_formatted_values():
    assert parse_currency_amount("$1,234.50 USD", "USD") == Decimal("1234.50")
    assert parse_currency_amount("$150.000 ARS", "ARS") == Decimal("150000")
    assert parse_currency_amount("€99,90 EUR", "EUR") == Decimal("99.90")
    assert parse_currency_amount(" 1.000,5 ", "EUR") == Decimal("1000.5")


@pytest.mark.parametrize("text", ["", "abc", "1,2,3.4.5 USD", "$ USD"])
def test_parse_currency_amount_rejects_garbage(text):
    with pytest.raises(ValidationError):
        parse_currency_amount(text, "USD")


def test_platform_routing_is_total():
    assert platform_for("ARS") is Platform.MERCADOPAGO
    assert platform_for(Currency.USD) is Platform.PAYPAL
    assert platform_for("eur") is Platform.PAYPAL
    assert [platform_key(c) for c in CURRENCY_ORDER] == ["paypal_usd", "mercadopago", "paypal_eur"]


def test_unknown_currency_is_rejected():
    assert to_currency(" usd ") is Currency.USD
    with pytest.raises(ValidationError):
        to_currency("GBP")


def test_free_service_shows_gratis_in_every_currency():
    for currency in Currency:
        assert format_service_price("flash_1carta_gratis", 10, currency) == FREE_LABEL
    assert format_service_price("flash_1carta", 5, "USD") == "$5.00 USD"


def test_service_catalogue_fallbacks():
    assert service_name("privada_3cartas") == "Consulta Privada"
    assert service_name("tarot_express") == "Tarot Express"
    assert service_category("flash_1carta") == "Consultas Rápidas"
    assert service_category("tarot_express") == "Otras"
