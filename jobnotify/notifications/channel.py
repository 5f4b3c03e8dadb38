"""Push channels. LINE Notify is the production channel."""

from abc import ABC, abstractmethod
from typing import Optional

import requests

from jobnotify.config.models import NotifyConfig
from jobnotify.logging import get_logger

from .models import NotifyAuthError, NotifyTransientError

logger = get_logger(__name__, component="channel")

# LINE Notify rejects messages longer than this
MAX_MESSAGE_LENGTH = 1000


class NotifyChannel(ABC):
    """Sends a text message to the holder of a credential."""

    @abstractmethod
    def send(self, message: str, credential: str) -> None:
        """Send one message.

        Raises:
            NotifyAuthError: The credential is no longer valid
            NotifyTransientError: Any other failure
        """


class LineNotifyChannel(NotifyChannel):
    """LINE Notify client.

    API Details:
        Endpoint: POST https://notify-api.line.me/api/notify
        Authentication: ``Authorization: Bearer <access token>``
        Body: form-encoded ``message``
        401 means the token was revoked by the user.
    """

    def __init__(self, config: NotifyConfig, session: Optional[requests.Session] = None):
        self.api_url = config.api_url
        self.timeout = config.timeout_seconds
        self._session = session or requests.Session()

    def send(self, message: str, credential: str) -> None:
        # Leading newline keeps the text off the sender-name line in the LINE client
        body = "\n" + message
        if len(body) > MAX_MESSAGE_LENGTH:
            body = body[: MAX_MESSAGE_LENGTH - 1] + "…"

        try:
            response = self._session.post(
                self.api_url,
                headers={"Authorization": f"Bearer {credential}"},
                data={"message": body},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise NotifyTransientError(
                f"Notify request timed out after {self.timeout} seconds"
            ) from e
        except requests.exceptions.RequestException as e:
            raise NotifyTransientError(f"Notify request failed: {e}") from e

        if response.status_code == 401:
            raise NotifyAuthError(f"Invalid access token: {response.text[:200]}")

        if response.status_code >= 300:
            logger.warning(
                f"Notify API returned HTTP {response.status_code}",
                extra={"event": "channel.send.rejected", "status_code": response.status_code},
            )
            raise NotifyTransientError(
                f"HTTP {response.status_code}: {response.reason}",
                status_code=response.status_code,
            )

        logger.debug("Notify message accepted", extra={"event": "channel.send.accepted"})
