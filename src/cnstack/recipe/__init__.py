"""Recipe resolution: queries, overlay store, matcher and builder."""

from cnstack.recipe.builder import RecipeBuilder, build_recipe
from cnstack.recipe.matcher import matches
from cnstack.recipe.query import GpuType, IntentType, OsFamily, Query, ServiceType
from cnstack.recipe.recipe import Recipe, validate_required_keys
from cnstack.recipe.store import Overlay, Store, load_store, reset_store_cache
from cnstack.recipe.version import Version, parse_version

__all__ = [
    "RecipeBuilder",
    "build_recipe",
    "matches",
    "Query",
    "OsFamily",
    "ServiceType",
    "GpuType",
    "IntentType",
    "Recipe",
    "validate_required_keys",
    "Store",
    "Overlay",
    "load_store",
    "reset_store_cache",
    "Version",
    "parse_version",
]
