"""
Publishing targets. Each one turns a sheet row into a published record.
"""

from .html_catalog_target import HTMLCatalogTarget
from .telegram_target import TelegramTarget

__all__ = [
    'HTMLCatalogTarget',
    'TelegramTarget',
]
