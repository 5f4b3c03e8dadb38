"""Unit tests for the LINE Notify channel."""

from unittest.mock import MagicMock

import pytest
import requests

from jobnotify.config.models import NotifyConfig
from jobnotify.notifications.channel import MAX_MESSAGE_LENGTH, LineNotifyChannel
from jobnotify.notifications.models import NotifyAuthError, NotifyTransientError


def _response(status_code=200, text='{"status":200}'):
    response = MagicMock()
    response.status_code = status_code
    response.reason = "OK"
    response.text = text
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def channel(session):
    return LineNotifyChannel(NotifyConfig(timeout_seconds=5), session=session)


def test_send_posts_bearer_token_and_message(channel, session):
    session.post.return_value = _response()

    channel.send("hello", "token-abc")

    session.post.assert_called_once_with(
        "https://notify-api.line.me/api/notify",
        headers={"Authorization": "Bearer token-abc"},
        data={"message": "\nhello"},
        timeout=5,
    )


def test_long_message_is_truncated(channel, session):
    session.post.return_value = _response()

    channel.send("職" * 2000, "token")

    body = session.post.call_args.kwargs["data"]["message"]
    assert len(body) == MAX_MESSAGE_LENGTH
    assert body.endswith("…")


def test_unauthorized_raises_auth_error(channel, session):
    session.post.return_value = _response(401, '{"status":401,"message":"Invalid access token"}')

    with pytest.raises(NotifyAuthError, match="Invalid access token"):
        channel.send("hello", "revoked")


@pytest.mark.parametrize("status_code", [400, 429, 500, 503])
def test_other_errors_are_transient(channel, session, status_code):
    session.post.return_value = _response(status_code)

    with pytest.raises(NotifyTransientError) as exc_info:
        channel.send("hello", "token")
    assert exc_info.value.status_code == status_code


def test_timeout_is_transient(channel, session):
    session.post.side_effect = requests.exceptions.Timeout()

    with pytest.raises(NotifyTransientError):
        channel.send("hello", "token")


def test_connection_error_is_transient(channel, session):
    session.post.side_effect = requests.exceptions.ConnectionError("reset")

    with pytest.raises(NotifyTransientError):
        channel.send("hello", "token")
