"""
rowsync - Target Registry

WHAT THIS FILE DOES:
    Maps target type names (as written in the YAML config) to the target
    classes that implement them, and builds target instances from config.

RELATIONSHIP TO OTHER FILES:
    - interfaces.py defines TargetInterface
    - components/target/* hold the two implementations
    - orchestrator/item.py asks the registry for each configured target

CLOSED SET:
    The engine knows exactly two sinks: 'telegram' and 'html_catalog'.
    A new sink type is added by writing its class and adding one builder to
    TargetRegistry.__init__; there is no runtime plugin discovery.

EXAMPLE USAGE:
    from rowsync.registry import registry

    target = registry.create_target(spec, context)
    # ConfigurationError: unknown target type 'rss'. Available: ['telegram', 'html_catalog']
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

from rowsync.components.cache.asset_cache import AssetCache
from rowsync.components.target.html_catalog_target import HTMLCatalogTarget
from rowsync.components.target.telegram_target import TelegramTarget
from rowsync.interfaces import (
    ConfigurationError,
    FilePolicy,
    MessagingGatewayInterface,
    TargetInterface,
)
from rowsync.workflows.schema import TargetSpec


@dataclass
class TargetContext:
    """Run-scoped collaborators handed to every target of an item"""
    workdir: Path
    asset_cache: AssetCache
    policy: FilePolicy
    gateway: Optional[MessagingGatewayInterface] = None


def _build_telegram(spec: TargetSpec, context: TargetContext) -> TargetInterface:
    if context.gateway is None:
        raise ConfigurationError(f"target telegram_{spec.name}: telegram_bot_token not set")
    return TelegramTarget(
        name=spec.name,
        channel=spec.telegram_channel,
        template_path=spec.template,
        gateway=context.gateway,
        asset_cache=context.asset_cache
    )


def _build_html_catalog(spec: TargetSpec, context: TargetContext) -> TargetInterface:
    return HTMLCatalogTarget(
        name=spec.name,
        directory=spec.dir,
        catalog=spec.catalog,
        template_path=spec.template,
        index_placeholder=spec.index_placeholder,
        workdir=context.workdir,
        asset_cache=context.asset_cache,
        policy=context.policy
    )


class TargetRegistry:
    """Registry of the supported target types"""

    def __init__(self):
        self._builders: Dict[str, Callable[[TargetSpec, TargetContext], TargetInterface]] = {
            TelegramTarget.TYPE: _build_telegram,
            HTMLCatalogTarget.TYPE: _build_html_catalog,
        }

    def available(self):
        return list(self._builders.keys())

    def create_target(self, spec: TargetSpec, context: TargetContext) -> TargetInterface:
        """Create a target instance from its config"""
        if spec.type not in self._builders:
            raise ConfigurationError(
                f"Unknown target type '{spec.type}'. "
                f"Available: {self.available()}"
            )
        return self._builders[spec.type](spec, context)


# Global registry instance
registry = TargetRegistry()
