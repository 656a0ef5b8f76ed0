"""
Unit tests for transport module.

Tests cover:
- Parsing bridge webhook payloads into events
- BridgeTransport requests and error handling
"""

import sys
import os
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from wabot.transport import (
    BridgeTransport,
    ConnectionClosed,
    ConnectionOpen,
    IncomingMessage,
    TransportError,
    parse_event,
)


def upsert(*messages):
    return {"event": "messages.upsert", "data": {"messages": list(messages)}}


def text_message(jid="111@s.whatsapp.net", text="ping", **extra):
    msg = {
        "key": {"remoteJid": jid, "fromMe": False},
        "message": {"conversation": text},
        "messageTimestamp": 1700000000,
        "pushName": "Alice",
    }
    msg.update(extra)
    return msg


class TestParseEvent:
    """Tests for parse_event function."""

    def test_connection_open(self):
        events = parse_event({"event": "connection.update", "data": {"connection": "open"}})
        assert events == [ConnectionOpen()]

    def test_connection_close_with_nested_status_code(self):
        payload = {
            "event": "connection.update",
            "data": {
                "connection": "close",
                "lastDisconnect": {"error": {"output": {"statusCode": 401}}},
            },
        }
        assert parse_event(payload) == [ConnectionClosed(reason_code=401)]

    def test_connection_close_with_flat_status_code(self):
        payload = {"event": "connection.update", "data": {"connection": "close", "statusCode": "428"}}
        assert parse_event(payload) == [ConnectionClosed(reason_code=428)]

    def test_connection_close_without_code(self):
        payload = {"event": "connection.update", "data": {"connection": "close"}}
        assert parse_event(payload) == [ConnectionClosed(reason_code=None)]

    def test_connecting_is_ignored(self):
        assert parse_event({"event": "connection.update", "data": {"connection": "connecting"}}) == []

    def test_conversation_message(self):
        events = parse_event(upsert(text_message()))
        assert events == [
            IncomingMessage(
                sender="111@s.whatsapp.net",
                text="ping",
                timestamp=1700000000,
                display_name="Alice",
            )
        ]
        assert events[0].sent_at_ms == 1700000000000

    def test_extended_text_message(self):
        msg = text_message()
        msg["message"] = {"extendedTextMessage": {"text": "weather lyon"}}
        assert parse_event(upsert(msg))[0].text == "weather lyon"

    def test_non_text_message_has_empty_text(self):
        msg = text_message()
        msg["message"] = {"imageMessage": {"url": "x"}}
        assert parse_event(upsert(msg))[0].text == ""

    def test_own_messages_skipped(self):
        msg = text_message()
        msg["key"]["fromMe"] = True
        assert parse_event(upsert(msg)) == []

    def test_stub_without_message_skipped(self):
        msg = text_message()
        del msg["message"]
        assert parse_event(upsert(msg)) == []

    def test_multiple_messages(self):
        events = parse_event(upsert(text_message(text="a"), text_message(text="b")))
        assert [e.text for e in events] == ["a", "b"]

    def test_missing_timestamp(self):
        msg = text_message()
        del msg["messageTimestamp"]
        event = parse_event(upsert(msg))[0]
        assert event.timestamp is None
        assert event.sent_at_ms is None

    def test_unknown_event(self):
        assert parse_event({"event": "presence.update", "data": {}}) == []
        assert parse_event({}) == []


def mock_client_returning(data, status_error=None):
    """Build a mock httpx.AsyncClient whose post() returns data."""
    mock_response = MagicMock()
    mock_response.json.return_value = data
    if status_error is not None:
        mock_response.raise_for_status.side_effect = status_error
    else:
        mock_response.raise_for_status = MagicMock()

    mock_instance = AsyncMock()
    mock_instance.post.return_value = mock_response
    return mock_instance


class TestBridgeTransport:
    """Tests for BridgeTransport class."""

    def test_init_strips_trailing_slash(self):
        transport = BridgeTransport("http://bridge:8080/", "http://bot/webhook")
        assert transport.base_url == "http://bridge:8080"

    @pytest.mark.asyncio
    async def test_connect_posts_auth_dir_and_webhook(self):
        transport = BridgeTransport("http://bridge", "http://bot/webhook")
        mock_instance = mock_client_returning({"ok": True})

        with patch("httpx.AsyncClient", return_value=mock_instance):
            await transport.connect("./auth_info")

        mock_instance.post.assert_called_once_with(
            "http://bridge/session/start",
            json={"auth_dir": "./auth_info", "webhook_url": "http://bot/webhook"},
        )

    @pytest.mark.asyncio
    async def test_request_pairing_code(self):
        transport = BridgeTransport("http://bridge", "http://bot/webhook")
        mock_instance = mock_client_returning({"ok": True, "code": "ABCD-1234"})

        with patch("httpx.AsyncClient", return_value=mock_instance):
            code = await transport.request_pairing_code("24176209643")

        assert code == "ABCD-1234"
        mock_instance.post.assert_called_once_with(
            "http://bridge/session/pair", json={"phone": "24176209643"}
        )

    @pytest.mark.asyncio
    async def test_request_pairing_code_missing_code(self):
        transport = BridgeTransport("http://bridge", "http://bot/webhook")
        mock_instance = mock_client_returning({"ok": True})

        with patch("httpx.AsyncClient", return_value=mock_instance):
            with pytest.raises(TransportError, match="no pairing code"):
                await transport.request_pairing_code("123")

    @pytest.mark.asyncio
    async def test_bridge_error_raises(self):
        transport = BridgeTransport("http://bridge", "http://bot/webhook")
        mock_instance = mock_client_returning({"ok": False, "error": "not connected"})

        with patch("httpx.AsyncClient", return_value=mock_instance):
            with pytest.raises(TransportError, match="not connected"):
                await transport.connect("./auth_info")

    @pytest.mark.asyncio
    async def test_send_success(self):
        transport = BridgeTransport("http://bridge", "http://bot/webhook")
        mock_instance = mock_client_returning({"ok": True})

        with patch("httpx.AsyncClient", return_value=mock_instance):
            assert await transport.send("111@s.whatsapp.net", "Pong") is True

        mock_instance.post.assert_called_once_with(
            "http://bridge/messages", json={"to": "111@s.whatsapp.net", "text": "Pong"}
        )

    @pytest.mark.asyncio
    async def test_send_http_error_returns_false(self):
        transport = BridgeTransport("http://bridge", "http://bot/webhook")
        error = httpx.HTTPStatusError("boom", request=MagicMock(), response=MagicMock())
        mock_instance = mock_client_returning({}, status_error=error)

        with patch("httpx.AsyncClient", return_value=mock_instance):
            assert await transport.send("111@s.whatsapp.net", "Pong") is False

    @pytest.mark.asyncio
    async def test_send_bridge_error_returns_false(self):
        transport = BridgeTransport("http://bridge", "http://bot/webhook")
        mock_instance = mock_client_returning({"ok": False})

        with patch("httpx.AsyncClient", return_value=mock_instance):
            assert await transport.send("111@s.whatsapp.net", "Pong") is False

    @pytest.mark.asyncio
    async def test_client_reused(self):
        transport = BridgeTransport("http://bridge", "http://bot/webhook")
        mock_instance = mock_client_returning({"ok": True})

        with patch("httpx.AsyncClient", return_value=mock_instance) as mock_client:
            await transport.send("a", "1")
            await transport.send("b", "2")

        assert mock_client.call_count == 1
        assert mock_instance.post.call_count == 2

    @pytest.mark.asyncio
    async def test_close_stops_session_and_client(self):
        transport = BridgeTransport("http://bridge", "http://bot/webhook")
        mock_instance = mock_client_returning({"ok": True})

        with patch("httpx.AsyncClient", return_value=mock_instance):
            await transport.send("a", "1")
            await transport.close()

        mock_instance.post.assert_called_with("http://bridge/session/stop", json={})
        mock_instance.aclose.assert_awaited_once()
        assert transport._client is None

    @pytest.mark.asyncio
    async def test_close_without_client_is_noop(self):
        transport = BridgeTransport("http://bridge", "http://bot/webhook")
        await transport.close()
        assert transport._client is None


def html_bridge():
    """A bridge that answers every call with an HTML gateway page."""
    transport = BridgeTransport("http://bridge", "http://bot/webhook")
    transport._client = httpx.AsyncClient(
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, text="<html>502 Bad Gateway</html>")
        )
    )
    return transport


class TestBridgeNonJsonReplies:
    """Tests for bridge replies that are not a JSON object."""

    @pytest.mark.asyncio
    async def test_connect_raises_transport_error(self):
        transport = html_bridge()
        with pytest.raises(TransportError, match="invalid JSON"):
            await transport.connect("./auth_info")
        await transport.close()

    @pytest.mark.asyncio
    async def test_request_pairing_code_raises_transport_error(self):
        transport = html_bridge()
        with pytest.raises(TransportError):
            await transport.request_pairing_code("24176209643")
        await transport.close()

    @pytest.mark.asyncio
    async def test_send_returns_false(self):
        transport = html_bridge()
        assert await transport.send("111@s.whatsapp.net", "Pong") is False
        await transport.close()

    @pytest.mark.asyncio
    async def test_close_still_releases_client(self):
        transport = html_bridge()
        await transport.close()
        assert transport._client is None

    @pytest.mark.asyncio
    async def test_json_list_raises_transport_error(self):
        transport = BridgeTransport("http://bridge", "http://bot/webhook")
        mock_instance = mock_client_returning(["ok"])

        with patch("httpx.AsyncClient", return_value=mock_instance):
            with pytest.raises(TransportError, match="unexpected body"):
                await transport.connect("./auth_info")
