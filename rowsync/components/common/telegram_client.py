"""Telegram Bot API client used as the messaging gateway."""

import logging
from typing import Any, BinaryIO, Dict, List, Optional

import requests

from rowsync.interfaces import MessagingGatewayInterface, Update


logger = logging.getLogger(__name__)


class TelegramError(Exception):
    """Raised when the Bot API rejects a request or cannot be reached."""

    def __init__(self, code: int, description: str):
        super().__init__(f"telegram request error {code}: {description}")
        self.code = code
        self.description = description


class TelegramClient(MessagingGatewayInterface):
    """
    Minimal Telegram Bot API client.

    Example usage:
        client = TelegramClient(token)

        message_id = client.send_message('@channel', '<b>hello</b>')

        with open('episode.mp3', 'rb') as f:
            client.send_audio('@channel', 'episode.mp3', f, caption='Episode 1')

        updates = client.get_updates(offset=0, timeout=30)
    """

    def __init__(
        self,
        token: str,
        base_url: str = 'https://api.telegram.org',
        request_timeout: int = 60
    ):
        """
        Initialize Telegram client.

        Args:
            token: Bot token
            base_url: API host (default: https://api.telegram.org)
            request_timeout: Socket timeout in seconds for non-polling calls
        """
        self.base_url = f"{base_url.rstrip('/')}/bot{token}"
        self.request_timeout = request_timeout
        self.session = requests.Session()

    def _make_request(
        self,
        method: str,
        api_method: str,
        params: Optional[Dict] = None,
        json: Optional[Dict] = None,
        data: Optional[Dict] = None,
        files: Optional[Dict] = None,
        timeout: Optional[float] = None
    ) -> Any:
        """
        Call a Bot API method and return its 'result' payload.

        Raises:
            TelegramError: On transport failure or an 'ok: false' reply
        """
        url = f"{self.base_url}/{api_method}"
        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json,
                data=data,
                files=files,
                timeout=timeout or self.request_timeout
            )
        except requests.exceptions.RequestException as e:
            raise TelegramError(0, f"request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            raise TelegramError(response.status_code, f"invalid response: {response.text[:200]}")

        if not payload.get('ok'):
            raise TelegramError(
                int(payload.get('error_code') or response.status_code),
                payload.get('description') or 'unknown error'
            )
        return payload.get('result')

    @staticmethod
    def _message_id(result: Any) -> str:
        if isinstance(result, dict) and 'message_id' in result:
            return str(result['message_id'])
        return '?'

    def send_message(self, chat: str, text: str) -> str:
        """Send an HTML message, returns the message id."""
        result = self._make_request('POST', 'sendMessage', json={
            'chat_id': chat,
            'text': text,
            'parse_mode': 'HTML',
        })
        return self._message_id(result)

    def send_audio(self, chat: str, filename: str, stream: BinaryIO, caption: str) -> str:
        """Upload an audio file with an HTML caption, returns the message id."""
        result = self._make_request(
            'POST',
            'sendAudio',
            data={
                'chat_id': chat,
                'caption': caption,
                'parse_mode': 'HTML',
            },
            files={'audio': (filename, stream)}
        )
        return self._message_id(result)

    def get_updates(self, offset: int, timeout: int = 0) -> List[Update]:
        """
        Long-poll for updates after the last acknowledged one.

        Args:
            offset: Highest update id already handled (0 = none)
            timeout: Long-poll timeout in seconds

        Returns:
            Parsed updates in delivery order
        """
        result = self._make_request(
            'GET',
            'getUpdates',
            params={'offset': offset + 1, 'timeout': timeout},
            timeout=timeout + self.request_timeout
        )
        return [parse_update(raw) for raw in result or []]


def parse_update(raw: Dict[str, Any]) -> Update:
    """Convert a raw Bot API update into an Update."""
    message = raw.get('message')
    if not isinstance(message, dict):
        return Update(update_id=int(raw.get('update_id') or 0), has_message=False)

    return Update(
        update_id=int(raw.get('update_id') or 0),
        sender_id=(message.get('from') or {}).get('id'),
        chat_id=(message.get('chat') or {}).get('id'),
        text=message.get('text') or '',
        date=int(message.get('date') or 0),
    )
