"""Configuration module for parmove."""

from .settings import (
    Config,
    SortingConfig,
    IndexConfig,
)
from .categories import (
    CategoryMap,
    DEFAULT_CATEGORIES,
    OTHER_CATEGORY,
    load_category_file,
    parse_blacklist,
)

__all__ = [
    "Config",
    "SortingConfig",
    "IndexConfig",
    "CategoryMap",
    "DEFAULT_CATEGORIES",
    "OTHER_CATEGORY",
    "load_category_file",
    "parse_blacklist",
]
