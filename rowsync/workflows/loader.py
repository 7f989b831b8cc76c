"""
rowsync - Config Loader

WHAT THIS FILE DOES:
    Loads a sync configuration from a YAML file and converts it to the
    dataclasses in workflows/schema.py. Handles .env loading, YAML parsing,
    ${ENV_VAR} resolution and validation.

THE LOADING PROCESS:
    1. Load .env file (if present) to populate environment variables
    2. Read YAML file from explicit path (JSON configs parse as YAML too)
    3. Resolve ${ENV_VAR} references
    4. Validate required sections (data_dir, items)
    5. Build and return a SyncConfig

ERROR HANDLING:
    - FileNotFoundError: config file doesn't exist at specified path
    - ValueError: missing required section or field, bad value types
    - ValueError: environment variable referenced but not set

YAML STRUCTURE:
    data_dir: ./data
    telegram_bot_token: ${TELEGRAM_BOT_TOKEN}
    items:
      - name: podcasts
        file: Podcasts
        targets:
          - type: telegram
            name: main
            telegram_channel: '@channel'
            template: ./templates/post.html
"""

from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

from rowsync.interfaces import FilePolicy
from .schema import BotSpec, ItemSpec, LoggingSpec, SyncConfig, TargetSpec, resolve_env


def _mode(value: Any, default: int) -> int:
    """Permission bits from an int (0o600 in YAML) or an octal string ('600')."""
    if value is None:
        return default
    if isinstance(value, int):
        return value
    return int(str(value), 8)


def _parse_target(data: Dict[str, Any]) -> TargetSpec:
    return TargetSpec(
        type=data['type'],
        name=data['name'],
        template=data.get('template', ''),
        telegram_channel=str(data.get('telegram_channel', '')),
        dir=data.get('dir', ''),
        catalog=data.get('catalog', ''),
        index_placeholder=data.get('index_placeholder', ''),
    )


def _parse_item(data: Dict[str, Any]) -> ItemSpec:
    targets = data.get('targets') or []
    if not targets:
        raise ValueError(f"Item '{data['name']}' has no targets")
    return ItemSpec(
        name=data['name'],
        file=data['file'],
        targets=[_parse_target(t) for t in targets],
    )


def load_config(config_path: Path) -> SyncConfig:
    """
    Load sync configuration from YAML file.

    Args:
        config_path: Explicit path to the config file

    Returns:
        SyncConfig with all items, targets and settings

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the config is invalid
    """
    # Load .env file if it exists (populates os.environ)
    load_dotenv()

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    data = resolve_env(data)

    for section in ('data_dir', 'items'):
        if section not in data:
            raise ValueError(f"Missing required section '{section}' in config file: {config_path}")

    try:
        items = [_parse_item(item) for item in data['items'] or []]

        bot_data = data.get('bot') or {}
        bot = BotSpec(
            users=[int(u) for u in bot_data.get('users', [])],
            trigger_message=bot_data.get('trigger_message', 'sync'),
            refresh_interval=float(bot_data.get('refresh_interval', 10)),
            poll_timeout=int(bot_data.get('poll_timeout', 30)),
            max_errors=int(bot_data.get('max_errors', 5)),
        )

        logging_data = data.get('logging') or {}
        logging_spec = LoggingSpec(
            log_dir=logging_data.get('log_dir', './logs'),
            log_level=str(logging_data.get('log_level', 'INFO')).upper(),
        )

        policy = FilePolicy(
            file_mode=_mode(data.get('file_mode'), 0o600),
            dir_mode=_mode(data.get('dir_mode'), 0o700),
        )

        config = SyncConfig(
            data_dir=data['data_dir'],
            items=items,
            google_credentials_file=data.get('google_credentials_file', './credentials.json'),
            google_token_file=data.get('google_token_file', './token.json'),
            telegram_bot_token=data.get('telegram_bot_token', '') or '',
            bot=bot,
            logging=logging_spec,
            policy=policy,
        )
    except KeyError as e:
        raise ValueError(f"Invalid config structure in {config_path}: missing {e}")
    except (TypeError, AttributeError) as e:
        raise ValueError(f"Invalid config structure in {config_path}: {e}")

    return config
