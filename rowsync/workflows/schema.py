"""
rowsync - Config Schema

WHAT THIS FILE DOES:
    Defines the Python dataclass models that represent a sync configuration:
    which spreadsheets to sync (items), where their rows go (targets), and
    how the bot and logging behave.

RELATIONSHIP TO OTHER FILES:
    - workflows/loader.py reads YAML and converts it to these dataclasses
    - registry.py receives TargetSpec objects and builds targets
    - orchestrator/factory.py receives a SyncConfig and builds a run
    - bot/poller.py receives the BotSpec

THE CONFIG STRUCTURE:
    SyncConfig (top level)
    ├── items: List[ItemSpec]
    │   └── targets: List[TargetSpec]
    ├── bot: BotSpec
    ├── logging: LoggingSpec
    └── policy: FilePolicy

ENVIRONMENT VARIABLE RESOLUTION:
    String values of the form ${NAME} (anywhere inside the string) are
    replaced with the environment variable NAME. A reference to an unset
    variable is an error, so a missing secret fails loudly at startup.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

from rowsync.interfaces import FilePolicy

_ENV_REF = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')


def resolve_env(value: Any) -> Any:
    """Recursively resolve ${ENV_VAR} references in strings, lists and dicts."""
    if isinstance(value, str):
        def _lookup(match):
            name = match.group(1)
            if name not in os.environ:
                raise ValueError(f"Environment variable '{name}' referenced in config is not set")
            return os.environ[name]
        return _ENV_REF.sub(_lookup, value)
    if isinstance(value, list):
        return [resolve_env(v) for v in value]
    if isinstance(value, dict):
        return {k: resolve_env(v) for k, v in value.items()}
    return value


@dataclass
class TargetSpec:
    """
    Target specification.

    Attributes:
        type: 'telegram' or 'html_catalog'
        name: Target name; type and name form the target id
        template: Path to the Jinja2 template
        telegram_channel: Chat id or @channel (telegram)
        dir: Root directory of catalogs (html_catalog)
        catalog: Catalog name (html_catalog)
        index_placeholder: Marker for the next index entry (html_catalog)
    """
    type: str
    name: str
    template: str = ''
    telegram_channel: str = ''
    dir: str = ''
    catalog: str = ''
    index_placeholder: str = ''

    @property
    def target_id(self) -> str:
        return f"{self.type}_{self.name}"


@dataclass
class ItemSpec:
    """
    One synchronization job.

    Attributes:
        name: Item name, also the working sub-directory name
        file: Drive spreadsheet name
        targets: Targets every row is published to
    """
    name: str
    file: str
    targets: List[TargetSpec] = field(default_factory=list)


@dataclass
class BotSpec:
    """
    Bot poller settings.

    Attributes:
        users: Telegram user ids allowed to trigger a sync
        trigger_message: Exact text that triggers a sync
        refresh_interval: Seconds to sleep between polling cycles
        poll_timeout: Long-poll timeout in seconds
        max_errors: Consecutive polling errors tolerated before exiting
    """
    users: List[int] = field(default_factory=list)
    trigger_message: str = 'sync'
    refresh_interval: float = 10
    poll_timeout: int = 30
    max_errors: int = 5


@dataclass
class LoggingSpec:
    """
    Logging configuration.

    Attributes:
        log_dir: Directory for log files
        log_level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    log_dir: str = './logs'
    log_level: str = 'INFO'


@dataclass
class SyncConfig:
    """
    Complete rowsync configuration.

    Attributes:
        data_dir: Root of per-run working directories
        items: Items to synchronize, in run order
        google_credentials_file: OAuth client secret JSON
        google_token_file: Cached OAuth token JSON
        telegram_bot_token: Bot token (used by telegram targets and the bot)
        bot: Bot poller settings
        logging: Logging settings
        policy: Permission bits for created files and directories
    """
    data_dir: str
    items: List[ItemSpec]
    google_credentials_file: str = './credentials.json'
    google_token_file: str = './token.json'
    telegram_bot_token: str = ''
    bot: Optional[BotSpec] = None
    logging: Optional[LoggingSpec] = None
    policy: Optional[FilePolicy] = None

    def __post_init__(self):
        """Set default bot, logging and permission config if not provided"""
        if self.bot is None:
            self.bot = BotSpec()
        if self.logging is None:
            self.logging = LoggingSpec()
        if self.policy is None:
            self.policy = FilePolicy()
