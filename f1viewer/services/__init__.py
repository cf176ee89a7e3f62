"""
Services package for f1viewer

This package contains the catalog fetching, caching and tree population logic.
"""
from f1viewer.services.catalog_client import CatalogClient
from f1viewer.services.command_dispatcher import CommandDispatcher
from f1viewer.services.entity_resolver import EntityResolver
from f1viewer.services.episode_organizer import organize
from f1viewer.services.metadata_cache import MetadataCaches
from f1viewer.services.tree_engine import TreeEngine

__all__ = [
    'CatalogClient',
    'CommandDispatcher',
    'EntityResolver',
    'organize',
    'MetadataCaches',
    'TreeEngine',
]
