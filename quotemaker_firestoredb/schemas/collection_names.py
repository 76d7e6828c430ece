from enum import Enum
from typing import Dict, Optional, Tuple


class DatabaseCollectionNames(str, Enum):
    PRODUCTS = "products"
    CLIENTS = "clients"
    SALESPEOPLE = "salespeople"
    COLORS = "colors"
    STYLES = "styles"
    QUOTES = "quotes"
    ORDERS = "orders"

    # Derived views, computed from products and never stored on their own
    CATEGORIES = "categories"
    SUBCATEGORIES = "subcategories"
    BRANDS = "brands"
    PRICE_LISTS = "priceLists"

    # Key/value namespace used by the storage shim
    STORAGE = "storage"

    @classmethod
    def primary(cls) -> Tuple["DatabaseCollectionNames", ...]:
        return tuple(ENTITY_KIND_BY_COLLECTION.keys())

    @classmethod
    def derived(cls) -> Tuple["DatabaseCollectionNames", ...]:
        return tuple(DERIVED_VIEW_SOURCES.keys())

    @classmethod
    def registry(cls) -> Tuple[str, ...]:
        """Every collection name the orchestrator knows about."""
        return tuple(name.value for name in cls.primary() + cls.derived())

    @classmethod
    def parse(cls, name: str) -> Optional["DatabaseCollectionNames"]:
        try:
            return cls(name)
        except ValueError:
            return None


ENTITY_KIND_BY_COLLECTION: Dict[DatabaseCollectionNames, str] = {
    DatabaseCollectionNames.PRODUCTS: "product",
    DatabaseCollectionNames.CLIENTS: "client",
    DatabaseCollectionNames.SALESPEOPLE: "salesperson",
    DatabaseCollectionNames.COLORS: "color",
    DatabaseCollectionNames.STYLES: "style",
    DatabaseCollectionNames.QUOTES: "quote",
    DatabaseCollectionNames.ORDERS: "order",
}

# derived view -> (source collection, canonical field projected)
DERIVED_VIEW_SOURCES: Dict[DatabaseCollectionNames, Tuple[DatabaseCollectionNames, str]] = {
    DatabaseCollectionNames.CATEGORIES: (DatabaseCollectionNames.PRODUCTS, "Category"),
    DatabaseCollectionNames.SUBCATEGORIES: (DatabaseCollectionNames.PRODUCTS, "Subcategory"),
    DatabaseCollectionNames.BRANDS: (DatabaseCollectionNames.PRODUCTS, "Brand"),
    DatabaseCollectionNames.PRICE_LISTS: (DatabaseCollectionNames.PRODUCTS, "PriceListName"),
}
