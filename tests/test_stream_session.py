"""
Tests for the user data stream session state machine
"""

import asyncio
import logging
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from websockets.exceptions import ConnectionClosedError

from binance_bot.core.exceptions import AuthenticationError, ConfigurationError, NetworkError
from binance_bot.exchange.binance.binance_models import StreamCredential
from binance_bot.websocket.core.stream_session import StreamSession, StreamState
from binance_bot.websocket.core.websocket_config import WebSocketConfig
from tests.fakes import FakeConnection, FakeConnector, execution_report, wait_until


def make_client(listen_keys=("key-1", "key-2", "key-3", "key-4"), error=None):
    client = Mock()
    client.has_credentials = True
    if error is not None:
        client.create_listen_key = AsyncMock(side_effect=error)
    else:
        client.create_listen_key = AsyncMock(
            side_effect=[StreamCredential(listen_key=key) for key in listen_keys]
        )
    return client


@pytest_asyncio.fixture
async def build_session():
    sessions = []

    def build(client, connector=None, **config_overrides):
        config = WebSocketConfig(
            stream_base_url="wss://stream.test:9443",
            reconnect_delay=config_overrides.pop('reconnect_delay', 0.05),
            **config_overrides
        )
        session = StreamSession(client, config, connector=connector or FakeConnector())
        sessions.append(session)
        return session

    yield build

    for session in sessions:
        await session.close()


class TestStart:
    """Test session startup"""

    @pytest.mark.asyncio
    async def test_missing_credentials_stay_idle(self, build_session):
        """Missing credentials leave the stream idle"""
        client = Mock()
        client.has_credentials = False
        client.create_listen_key = AsyncMock()
        connector = FakeConnector()
        session = build_session(client, connector)

        started = await session.start()
        await asyncio.sleep(0.01)

        assert started is False
        assert session.state == StreamState.IDLE
        client.create_listen_key.assert_not_awaited()
        assert connector.calls == []

    @pytest.mark.asyncio
    async def test_connects_with_fresh_listen_key(self, build_session):
        """Start issues a listen key and connects with it"""
        connector = FakeConnector([FakeConnection(block=True)])
        session = build_session(make_client(), connector)

        assert await session.start() is True
        await wait_until(lambda: session.is_connected)

        url, kwargs = connector.calls[0]
        assert url == "wss://stream.test:9443/ws/key-1"
        assert kwargs == {'open_timeout': 10.0, 'ping_interval': 20.0, 'ping_timeout': 20.0}
        assert session.state == StreamState.CONNECTED

    @pytest.mark.asyncio
    async def test_second_start_is_ignored(self, build_session):
        """Second start while connected does nothing"""
        connector = FakeConnector([FakeConnection(block=True)])
        client = make_client()
        session = build_session(client, connector)

        await session.start()
        await wait_until(lambda: session.is_connected)
        assert await session.start() is True
        await asyncio.sleep(0.01)

        assert client.create_listen_key.await_count == 1
        assert len(connector.calls) == 1


class TestMessages:
    """Test message handling on an open connection"""

    @pytest.mark.asyncio
    async def test_filled_report_reaches_subscribers(self, build_session):
        """Only FILLED reports reach subscribers"""
        connection = FakeConnection([
            execution_report(status="NEW"),
            execution_report(status="FILLED")
        ], block=True)
        session = build_session(make_client(), FakeConnector([connection]))
        handler = AsyncMock()
        session.subscribe(handler)

        await session.start()
        await wait_until(lambda: handler.await_count == 1)

        fill = handler.await_args.args[0]
        assert (fill.side, fill.symbol, fill.quantity, fill.price) == ("BUY", "BTCUSDT", "0.5", "30000")

    @pytest.mark.asyncio
    async def test_malformed_message_keeps_connection(self, build_session):
        """Malformed messages are dropped without reconnecting"""
        connection = FakeConnection(["not json", "[1, 2]", execution_report()], block=True)
        session = build_session(make_client(), FakeConnector([connection]))
        handler = Mock()
        session.subscribe(handler)

        await session.start()
        await wait_until(lambda: handler.call_count == 1)

        assert session.is_connected
        assert not connection.closed
        assert not session.reconnect_pending

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_break_stream(self, build_session):
        """A failing subscriber does not break the stream"""
        connection = FakeConnection([execution_report(order_id=1), execution_report(order_id=2)], block=True)
        session = build_session(make_client(), FakeConnector([connection]))
        broken = Mock(side_effect=RuntimeError("boom"))
        healthy = Mock()
        session.subscribe(broken)
        session.subscribe(healthy)

        await session.start()
        await wait_until(lambda: healthy.call_count == 2)

        assert session.is_connected


class TestReconnect:
    """Test restart scheduling"""

    @pytest.mark.asyncio
    async def test_remote_close_restarts_with_new_listen_key(self, build_session):
        """Remote close restarts with a new listen key"""
        connector = FakeConnector([FakeConnection(), FakeConnection(block=True)])
        client = make_client()
        session = build_session(client, connector, reconnect_delay=0.01)

        await session.start()
        await wait_until(lambda: len(connector.calls) == 2 and session.is_connected)

        assert connector.calls[1][0].endswith("/ws/key-2")
        assert client.create_listen_key.await_count == 2
        assert session.reconnect_attempts == 0

    @pytest.mark.asyncio
    async def test_transport_error_moves_to_error_state(self, build_session):
        """Transport error moves the session to ERROR"""
        connection = FakeConnection(error=ConnectionClosedError(None, None))
        session = build_session(make_client(), FakeConnector([connection]), reconnect_delay=10)

        await session.start()
        await wait_until(lambda: session.reconnect_pending)

        assert session.state == StreamState.ERROR

    @pytest.mark.asyncio
    async def test_failed_connect_schedules_restart(self, build_session):
        """Failed connect schedules a restart"""
        connector = FakeConnector([OSError("refused")])
        session = build_session(make_client(), connector, reconnect_delay=10)

        await session.start()
        await wait_until(lambda: session.reconnect_pending)

        assert session.state == StreamState.ERROR
        assert session.reconnect_attempts == 1

    @pytest.mark.asyncio
    async def test_close_suppresses_pending_restart(self, build_session):
        """Close cancels a pending restart"""
        connector = FakeConnector([FakeConnection()])
        client = make_client()
        session = build_session(client, connector, reconnect_delay=0.05)

        await session.start()
        await wait_until(lambda: session.reconnect_pending)
        await session.close()
        await asyncio.sleep(0.15)

        assert session.state == StreamState.STOPPED
        assert not session.reconnect_pending
        assert len(connector.calls) == 1
        assert client.create_listen_key.await_count == 1

    @pytest.mark.asyncio
    async def test_close_while_connected(self, build_session):
        """Close while connected closes the connection"""
        connection = FakeConnection(block=True)
        session = build_session(make_client(), FakeConnector([connection]))

        await session.start()
        await wait_until(lambda: session.is_connected)
        await session.close()
        await asyncio.sleep(0.1)

        assert connection.closed
        assert session.state == StreamState.STOPPED
        assert session.stream_credential is None
        assert not session.reconnect_pending

    @pytest.mark.asyncio
    async def test_second_close_is_a_no_op(self, build_session, caplog):
        """Closing an already stopped session does nothing"""
        connection = FakeConnection(block=True)
        session = build_session(make_client(), FakeConnector([connection]))

        await session.start()
        await wait_until(lambda: session.is_connected)
        await session.close()
        caplog.clear()
        with caplog.at_level(logging.INFO):
            await session.close()

        assert session.state == StreamState.STOPPED
        assert "User data stream closed" not in caplog.text

    @pytest.mark.asyncio
    async def test_repeated_errors_schedule_one_restart(self, build_session):
        """Several errors in a row schedule a single restart"""
        session = build_session(make_client(), reconnect_delay=10)

        session._handle_disconnect(StreamState.ERROR, "first error")
        session._handle_disconnect(StreamState.ERROR, "second error")
        session._handle_disconnect(StreamState.CLOSED, "close after error")

        assert session.reconnect_pending
        assert session.reconnect_attempts == 1

    @pytest.mark.asyncio
    async def test_failing_connections_restart_once_per_failure(self, build_session):
        """Each failed connection leads to exactly one new listen key and one new connect"""
        connector = FakeConnector([
            FakeConnection(["not json"], error=ConnectionClosedError(None, None)),
            FakeConnection(error=ConnectionClosedError(None, None)),
            OSError("refused"),
            FakeConnection(block=True),
        ])
        client = make_client()
        session = build_session(client, connector, reconnect_delay=0.01)

        await session.start()
        await wait_until(lambda: len(connector.calls) == 4 and session.is_connected)
        await asyncio.sleep(0.05)

        assert len(connector.calls) == 4
        assert client.create_listen_key.await_count == 4
        assert [url for url, _ in connector.calls] == [
            f"wss://stream.test:9443/ws/key-{n}" for n in range(1, 5)
        ]
        assert not session.reconnect_pending

    @pytest.mark.asyncio
    async def test_restart_stays_single_while_pending(self, build_session):
        """A failure arriving while a restart is pending does not schedule another"""
        connector = FakeConnector([FakeConnection(error=ConnectionClosedError(None, None))])
        session = build_session(make_client(), connector, reconnect_delay=10)

        await session.start()
        await wait_until(lambda: session.reconnect_pending)
        pending = session._reconnect_handle
        await session.start()

        assert session._reconnect_handle is pending
        assert session.reconnect_attempts == 1
        assert len(connector.calls) == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, build_session):
        """No restart once the attempt limit is reached"""
        session = build_session(make_client(), reconnect_delay=10, max_reconnect_attempts=0)

        session._handle_disconnect(StreamState.ERROR, "lost")

        assert not session.reconnect_pending
        assert session.state == StreamState.IDLE


class TestCredentialIssuance:
    """Test listen key issuance failures"""

    @pytest.mark.asyncio
    async def test_transient_failure_retries_with_backoff(self, build_session):
        """Transient issuance failure is retried with backoff"""
        client = make_client(error=NetworkError("down"))
        connector = FakeConnector()
        session = build_session(client, connector, credential_retry_base_delay=10)

        await session.start()
        await wait_until(lambda: session.reconnect_pending)

        assert session.state == StreamState.ERROR
        assert session.credential_failures == 1
        assert connector.calls == []

    @pytest.mark.asyncio
    async def test_rejected_key_is_not_retried(self, build_session):
        """Rejected API key is not retried"""
        client = make_client(error=AuthenticationError("rejected", status=401))
        session = build_session(client)

        await session.start()
        await wait_until(lambda: client.create_listen_key.await_count == 1)
        await asyncio.sleep(0.01)

        assert session.state == StreamState.IDLE
        assert not session.reconnect_pending

    @pytest.mark.asyncio
    async def test_configuration_error_is_not_retried(self, build_session):
        """Missing configuration is not retried"""
        client = make_client(error=ConfigurationError("no key"))
        session = build_session(client)

        await session.start()
        await wait_until(lambda: client.create_listen_key.await_count == 1)
        await asyncio.sleep(0.01)

        assert session.state == StreamState.IDLE
        assert not session.reconnect_pending

    @pytest.mark.asyncio
    async def test_retry_can_be_disabled(self, build_session):
        """Retry can be turned off"""
        client = make_client(error=NetworkError("down"))
        session = build_session(client, retry_credential_issuance=False)

        await session.start()
        await wait_until(lambda: client.create_listen_key.await_count == 1)
        await asyncio.sleep(0.01)

        assert session.state == StreamState.IDLE
        assert not session.reconnect_pending


class TestStatus:
    """Test status reporting"""

    def test_initial_status(self):
        """Fresh session reports idle status"""
        client = Mock()
        session = StreamSession(client, WebSocketConfig())

        status = session.get_status()

        assert status['state'] == 'idle'
        assert status['is_connected'] is False
        assert status['reconnect_pending'] is False
        assert status['registered_handlers'] == {'fill': 0}
