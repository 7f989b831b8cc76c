from .loader import load_config
from .schema import BotSpec, ItemSpec, LoggingSpec, SyncConfig, TargetSpec

__all__ = [
    'load_config',
    'SyncConfig',
    'ItemSpec',
    'TargetSpec',
    'BotSpec',
    'LoggingSpec',
]
