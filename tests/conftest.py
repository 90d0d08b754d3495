from unittest.mock import patch

import pytest

from binance_bot.exchange.binance.binance_models import Credential, Order
from binance_bot.exchange.core.exchange_config import ExchangeConfig

TEST_TIMESTAMP = 1700000000000


@pytest.fixture
def credential():
    return Credential(api_key="test-api-key-0123456789", api_secret="test-api-secret")


@pytest.fixture
def exchange_config():
    return ExchangeConfig(base_url="https://api.binance.com", request_timeout=10.0)


@pytest.fixture
def fixed_timestamp():
    with patch(
        "binance_bot.exchange.binance.binance_auth.current_timestamp_ms",
        return_value=TEST_TIMESTAMP
    ):
        yield TEST_TIMESTAMP


@pytest.fixture
def make_order():
    def build(symbol="BTCUSDT", side="BUY", price="100", qty="2", order_id="1"):
        return Order(
            symbol=symbol,
            order_id=order_id,
            price=price,
            orig_qty=qty,
            executed_qty="0",
            status="NEW",
            order_type="LIMIT",
            side=side
        )
    return build

