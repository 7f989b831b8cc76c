"""
TelegramTarget - Publish rows as Telegram channel posts

Renders the configured template against the row. Rows with an 'audio' field
are sent as an audio upload with the rendered text as caption; all other rows
are sent as a plain HTML message. The Telegram message id is the record id.
"""

import io
import logging
from typing import Dict

from jinja2 import TemplateError

from rowsync.components.cache.asset_cache import AssetCache
from rowsync.components.target.templates import load_template
from rowsync.interfaces import (
    ConfigurationError,
    MessagingGatewayInterface,
    ObjectStoreInterface,
    TargetError,
    TargetInterface,
)

logger = logging.getLogger(__name__)


class TelegramTarget(TargetInterface):
    """
    Telegram channel target.

    Stateless between rows apart from the item's shared asset cache.
    """

    TYPE = 'telegram'

    def __init__(
        self,
        name: str,
        channel: str,
        template_path: str,
        gateway: MessagingGatewayInterface,
        asset_cache: AssetCache
    ):
        """
        Initialize TelegramTarget.

        Args:
            name: Target name, unique per type within an item
            channel: Chat id or @channel name
            template_path: Path to the message template
            gateway: Messaging gateway used to send posts
            asset_cache: Item asset cache
        """
        super().__init__(name)
        if not channel:
            raise ConfigurationError(f"target {self.target_id()}: telegram_channel not set")
        self.channel = channel
        self.template = load_template(template_path)
        self.gateway = gateway
        self.asset_cache = asset_cache

    def insert(self, row: Dict[str, str], object_store: ObjectStoreInterface) -> str:
        try:
            text = self.template.render(row)
        except TemplateError as e:
            raise TargetError(f"failed to render template: {e}") from e

        audio = row.get('audio', '')
        if not audio:
            return self.gateway.send_message(self.channel, text)

        if audio in self.asset_cache:
            with self.asset_cache.open(audio) as f:
                return self.gateway.send_audio(self.channel, audio, f, text)

        payload = io.BytesIO()
        self.asset_cache.stream(audio, object_store, payload)
        payload.seek(0)
        return self.gateway.send_audio(self.channel, audio, payload, text)
