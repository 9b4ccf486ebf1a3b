import logging
from decimal import Decimal
from fractions import Fraction

import pytest

from gateway.logging_config import _use_console, stringify_amounts


def test_amounts_are_rendered_as_strings():
    event = stringify_amounts(
        None,
        "info",
        {"event": "trade_submitted", "gas_price": Decimal("12.50"), "price": Fraction(1, 2000), "nonce": 3},
    )

    assert event["gas_price"] == "12.50"
    assert event["price"] == "1/2000"
    assert event["nonce"] == 3


@pytest.mark.parametrize(
    "level, log_format, expected",
    [
        (logging.DEBUG, "auto", True),
        (logging.INFO, "auto", False),
        (logging.INFO, "console", True),
        (logging.DEBUG, "json", False),
    ],
)
def test_renderer_selection(level, log_format, expected):
    assert _use_console(level, log_format) is expected
