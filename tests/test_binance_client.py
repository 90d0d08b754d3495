"""
Tests for the Binance REST client
"""

import asyncio
import hashlib
import hmac
import json
import logging

import aiohttp
import pytest

from binance_bot.core.exceptions import (
    AuthenticationError, ConfigurationError, ExchangeAPIError, ExchangeResponseError, NetworkError
)
from binance_bot.exchange.binance.binance_client import BinanceClient
from binance_bot.exchange.core.exchange_config import ExchangeConfig
from tests.fakes import FakeResponse, FakeSession


def signature_for(query: str) -> str:
    return hmac.new(b"test-api-secret", query.encode(), hashlib.sha256).hexdigest()


def ok(payload) -> FakeResponse:
    return FakeResponse(200, json.dumps(payload))


class TestAccountOperations:
    """Test balance and order queries"""

    @pytest.mark.asyncio
    async def test_wallet_balance_drops_empty_assets(self, credential, exchange_config, fixed_timestamp):
        """Wallet balance keeps only assets with a non-zero total"""
        session = FakeSession([ok({
            'canTrade': True,
            'balances': [
                {'asset': 'BTC', 'free': '0.50000000', 'locked': '0.00000000'},
                {'asset': 'ETH', 'free': '0.00000000', 'locked': '0.00000000'},
                {'asset': 'USDT', 'free': '0.00000000', 'locked': '10.00000000'}
            ]
        })])
        client = BinanceClient(credential, exchange_config, session=session)

        balances = await client.get_wallet_balance()

        assert [b.asset for b in balances] == ['BTC', 'USDT']
        assert session.calls[0]['method'] == 'GET'
        assert session.calls[0]['headers'] == {'X-MBX-APIKEY': credential.api_key}

    @pytest.mark.asyncio
    async def test_open_orders_signed_in_wire_order(self, credential, exchange_config, fixed_timestamp):
        """Open orders request is signed with parameters in wire order"""
        session = FakeSession([ok([{
            'symbol': 'BTCUSDT', 'orderId': 7, 'price': '30000.00', 'origQty': '0.1',
            'executedQty': '0', 'status': 'NEW', 'type': 'LIMIT', 'side': 'BUY', 'time': 1
        }])])
        client = BinanceClient(credential, exchange_config, session=session)

        orders = await client.get_open_orders('BTCUSDT')

        query = f"timestamp={fixed_timestamp}&symbol=BTCUSDT"
        assert session.calls[0]['url'] == \
            f"https://api.binance.com/api/v3/openOrders?{query}&signature={signature_for(query)}"
        assert orders[0].order_id == '7'
        assert orders[0].price == '30000.00'

    @pytest.mark.asyncio
    async def test_open_orders_without_symbol(self, credential, exchange_config, fixed_timestamp):
        """Open orders without a symbol omit the symbol parameter"""
        session = FakeSession([ok([])])
        client = BinanceClient(credential, exchange_config, session=session)

        assert await client.get_open_orders() == []
        assert "symbol=" not in session.calls[0]['url']

    @pytest.mark.asyncio
    async def test_order_history_limit_defaults_to_ten(self, credential, exchange_config, fixed_timestamp):
        """Order history asks for ten trades by default"""
        session = FakeSession([ok([{
            'symbol': 'ETHUSDT', 'id': 3, 'orderId': 11, 'price': '2000', 'qty': '1.5',
            'commission': '0.001', 'commissionAsset': 'BNB', 'time': 1700000000000, 'isBuyer': False
        }])])
        client = BinanceClient(credential, exchange_config, session=session)

        trades = await client.get_order_history('ETHUSDT')

        query = f"timestamp={fixed_timestamp}&limit=10&symbol=ETHUSDT"
        assert session.calls[0]['url'].endswith(f"/api/v3/myTrades?{query}&signature={signature_for(query)}")
        assert trades[0].side == 'SELL'
        assert trades[0].status == 'FILLED'
        assert trades[0].executed_qty == '1.5'
        assert trades[0].commission_asset == 'BNB'

    @pytest.mark.asyncio
    async def test_recv_window_is_signed(self, credential, fixed_timestamp):
        """Configured recvWindow is part of the signed query"""
        session = FakeSession([ok({'balances': []})])
        client = BinanceClient(credential, ExchangeConfig(recv_window=5000), session=session)

        await client.get_account_snapshot()

        assert f"?timestamp={fixed_timestamp}&recvWindow=5000&signature=" in session.calls[0]['url']

    @pytest.mark.asyncio
    async def test_every_call_has_timeout(self, credential, fixed_timestamp):
        """Every request carries a client timeout"""
        session = FakeSession([ok([])])
        client = BinanceClient(credential, ExchangeConfig(request_timeout=3.5), session=session)

        await client.get_open_orders()

        assert session.calls[0]['timeout'].total == 3.5

    @pytest.mark.asyncio
    async def test_signed_call_without_credentials(self, exchange_config):
        """Signed call without credentials raises ConfigurationError"""
        session = FakeSession()
        client = BinanceClient(None, exchange_config, session=session)

        with pytest.raises(ConfigurationError):
            await client.get_open_orders()
        assert session.calls == []


class TestMarketData:
    """Test the public price table"""

    @pytest.mark.asyncio
    async def test_prices_filtered_and_unsigned(self, credential, exchange_config):
        """Ticker prices are unsigned and filtered to the wanted symbols"""
        session = FakeSession([ok([
            {'symbol': 'BTCUSDT', 'price': '30000.00'},
            {'symbol': 'ETHUSDT', 'price': '2000.00'},
            {'symbol': 'BNBUSDT', 'price': '300.00'}
        ])])
        client = BinanceClient(credential, exchange_config, session=session)

        prices = await client.get_current_prices({'BTCUSDT', 'ETHUSDT', 'XYZUSDT'})

        assert {p.symbol: p.price for p in prices} == {'BTCUSDT': '30000.00', 'ETHUSDT': '2000.00'}
        assert session.calls[0]['url'] == "https://api.binance.com/api/v3/ticker/price"
        assert session.calls[0]['headers'] == {}

    @pytest.mark.asyncio
    async def test_empty_symbol_set_makes_no_call(self, credential, exchange_config):
        """Empty symbol set returns no prices without a request"""
        session = FakeSession()
        client = BinanceClient(credential, exchange_config, session=session)

        assert await client.get_current_prices(set()) == []
        assert session.calls == []


class TestListenKey:
    """Test listen key issuance"""

    @pytest.mark.asyncio
    async def test_create_listen_key(self, credential, exchange_config):
        """Listen key is issued with the API key header only"""
        session = FakeSession([ok({'listenKey': 'abc123'})])
        client = BinanceClient(credential, exchange_config, session=session)

        stream_credential = await client.create_listen_key()

        assert stream_credential.listen_key == 'abc123'
        assert session.calls[0]['method'] == 'POST'
        assert session.calls[0]['url'] == "https://api.binance.com/api/v3/userDataStream"
        assert session.calls[0]['headers'] == {'X-MBX-APIKEY': credential.api_key}

    @pytest.mark.asyncio
    async def test_missing_listen_key(self, credential, exchange_config):
        """Response without a listen key is an ExchangeResponseError"""
        client = BinanceClient(credential, exchange_config, session=FakeSession([ok({})]))

        with pytest.raises(ExchangeResponseError):
            await client.create_listen_key()


class TestErrorMapping:
    """Test how failures surface to the caller"""

    @pytest.mark.asyncio
    async def test_rejected_key_is_authentication_error(self, credential, exchange_config, fixed_timestamp):
        """Rejected API key maps to AuthenticationError"""
        body = json.dumps({'code': -2015, 'msg': 'Invalid API-key, IP, or permissions for action.'})
        client = BinanceClient(credential, exchange_config, session=FakeSession([FakeResponse(401, body)]))

        with pytest.raises(AuthenticationError) as exc_info:
            await client.get_wallet_balance()

        assert exc_info.value.status == 401
        assert exc_info.value.code == -2015
        assert exc_info.value.body == body

    @pytest.mark.asyncio
    async def test_bad_signature_code_is_authentication_error(self, credential, exchange_config, fixed_timestamp):
        """Invalid signature error code maps to AuthenticationError"""
        body = json.dumps({'code': -1022, 'msg': 'Signature for this request is not valid.'})
        client = BinanceClient(credential, exchange_config, session=FakeSession([FakeResponse(400, body)]))

        with pytest.raises(AuthenticationError):
            await client.get_open_orders()

    @pytest.mark.asyncio
    async def test_other_venue_errors_keep_status_and_body(self, credential, exchange_config, fixed_timestamp):
        """Other venue errors keep their status and body"""
        body = json.dumps({'code': -1121, 'msg': 'Invalid symbol.'})
        client = BinanceClient(credential, exchange_config, session=FakeSession([FakeResponse(400, body)]))

        with pytest.raises(ExchangeAPIError) as exc_info:
            await client.get_open_orders('NOPE')

        assert not isinstance(exc_info.value, AuthenticationError)
        assert exc_info.value.status == 400
        assert exc_info.value.code == -1121

    @pytest.mark.asyncio
    async def test_undecodable_body(self, credential, exchange_config, fixed_timestamp):
        """Non-JSON body is an ExchangeResponseError"""
        client = BinanceClient(credential, exchange_config, session=FakeSession([FakeResponse(200, "<html>")]))

        with pytest.raises(ExchangeResponseError):
            await client.get_open_orders()

    @pytest.mark.asyncio
    async def test_unexpected_shape(self, credential, exchange_config, fixed_timestamp):
        """JSON of the wrong shape is an ExchangeResponseError"""
        client = BinanceClient(credential, exchange_config, session=FakeSession([ok({'not': 'a list'})]))

        with pytest.raises(ExchangeResponseError):
            await client.get_open_orders()

    @pytest.mark.asyncio
    async def test_connection_failure_is_network_error(self, credential, exchange_config, fixed_timestamp):
        """Connection failures are wrapped in NetworkError"""
        session = FakeSession(error=aiohttp.ClientConnectionError("connection refused"))
        client = BinanceClient(credential, exchange_config, session=session)

        with pytest.raises(NetworkError):
            await client.get_open_orders()

    @pytest.mark.asyncio
    async def test_timeout_is_network_error(self, credential, exchange_config):
        """Request timeouts are wrapped in NetworkError"""
        session = FakeSession(error=asyncio.TimeoutError())
        client = BinanceClient(credential, exchange_config, session=session)

        with pytest.raises(NetworkError) as exc_info:
            await client.get_current_prices({'BTCUSDT'})

        assert "timed out" in str(exc_info.value)


class TestMalformedRows:
    """Test that bad rows in a 2xx body surface as typed, logged errors"""

    @pytest.mark.asyncio
    async def test_non_numeric_balance(self, credential, exchange_config, fixed_timestamp, caplog):
        """A non-numeric free amount fails the balance query with ExchangeResponseError"""
        body = {'balances': [{'asset': 'BTC', 'free': 'abc', 'locked': '0'}]}
        client = BinanceClient(credential, exchange_config, session=FakeSession([ok(body)]))

        with caplog.at_level(logging.ERROR):
            with pytest.raises(ExchangeResponseError) as exc_info:
                await client.get_wallet_balance()

        assert exc_info.value.status == 200
        assert '"abc"' in exc_info.value.body
        assert "get wallet balance failed" in caplog.text

    @pytest.mark.asyncio
    async def test_null_balance_row(self, credential, exchange_config, fixed_timestamp):
        """A null entry in the balances list is a malformed response"""
        client = BinanceClient(credential, exchange_config, session=FakeSession([ok({'balances': [None]})]))

        with pytest.raises(ExchangeResponseError):
            await client.get_account_snapshot()

    @pytest.mark.asyncio
    async def test_null_open_order_row(self, credential, exchange_config, fixed_timestamp, caplog):
        """A null row in openOrders fails the query with ExchangeResponseError"""
        client = BinanceClient(credential, exchange_config, session=FakeSession([ok([None])]))

        with caplog.at_level(logging.ERROR):
            with pytest.raises(ExchangeResponseError):
                await client.get_open_orders()

        assert "get open orders failed" in caplog.text

    @pytest.mark.asyncio
    async def test_null_trade_row(self, credential, exchange_config, fixed_timestamp):
        """A null row in myTrades fails the query with ExchangeResponseError"""
        client = BinanceClient(credential, exchange_config, session=FakeSession([ok([None])]))

        with pytest.raises(ExchangeResponseError):
            await client.get_order_history()

    @pytest.mark.asyncio
    async def test_null_price_row(self, credential, exchange_config, caplog):
        """A null row in the price table fails the query with ExchangeResponseError"""
        client = BinanceClient(credential, exchange_config, session=FakeSession([ok([None])]))

        with caplog.at_level(logging.ERROR):
            with pytest.raises(ExchangeResponseError):
                await client.get_current_prices({'BTCUSDT'})

        assert "get current prices failed" in caplog.text
