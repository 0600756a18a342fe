"""Keep-alive WebSocket."""
from unittest.mock import patch

import pytest
from starlette.websockets import WebSocketDisconnect

from app.core.config import settings
from app.core.errors import AuthenticationError
from app.services.auth import Principal


@patch("app.services.auth.verify_token", return_value=Principal(uid="uid-ws"))
def test_ping_pong(mock_verify, anonymous_client):
    with anonymous_client.websocket_connect("/ws?token=abc.def.ghi") as websocket:
        websocket.send_text("ping")
        assert websocket.receive_text() == "pong"
    mock_verify.assert_called_once_with("abc.def.ghi")


@patch("app.services.auth.verify_token", return_value=Principal(uid="uid-ws"))
def test_keepalive_after_silence(mock_verify, anonymous_client, monkeypatch):
    monkeypatch.setattr(settings, "ws_keepalive_seconds", 0.05)
    with anonymous_client.websocket_connect("/ws?token=abc.def.ghi") as websocket:
        assert websocket.receive_json() == {"type": "keepalive"}


@patch("app.services.auth.verify_token", side_effect=AuthenticationError("Invalid token"))
def test_bad_token_is_closed_with_policy_violation(mock_verify, anonymous_client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with anonymous_client.websocket_connect("/ws?token=bad"):
            pass
    assert exc_info.value.code == 1008
