from .asset_cache import AssetCache, TeeWriter, create_exclusive

__all__ = ['AssetCache', 'TeeWriter', 'create_exclusive']
