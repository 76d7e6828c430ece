import re
from types import MappingProxyType
from typing import Any, Dict, Mapping, NamedTuple, Optional, Tuple

from .logger import logger


class FieldSpec(NamedTuple):
    aliases: Tuple[str, ...]
    field_type: str = "str"  # str | float | bool | list
    default: Any = ""


def _field(*aliases: str, field_type: str = "str", default: Any = None) -> FieldSpec:
    if default is None:
        default = {"str": "", "float": 0.0, "bool": False, "list": ()}[field_type]
    return FieldSpec(aliases, field_type, default)


# Canonical field -> ordered aliases. The canonical name is always tried first.
FIELD_ALIASES: Mapping[str, Mapping[str, FieldSpec]] = MappingProxyType(
    {
        "product": MappingProxyType(
            {
                "id": _field("id", "_id", "productId", "product_id"),
                "Length": _field("Length", "Size", field_type="float"),
                "PriceListName": _field("PriceListName", "PriceList", "Price List Name", "price_list"),
                "Currency": _field("Currency", "currency_code", default="USD"),
                "Category": _field("Category", "ProductCategory", "product_category"),
                "Subcategory": _field("Subcategory", "ProductSubcategory", "Sub Category"),
                "Brand": _field("Brand", "BrandName", "Brand Name"),
                "Density": _field("Density"),
                "Product": _field("Product", "ProductName", "Product Name", "name"),
                "Colors": _field("Colors", "Color", "Available Colors"),
                "StandardWeight": _field(
                    "StandardWeight", "Standard Weight", "Standard Available Weight", "Weight", field_type="float"
                ),
                "Rate": _field("Rate", "Price", "Unit Price", field_type="float"),
                "BundledSalesKG": _field("BundledSalesKG", "CanBeSoldInKG", "Can Be Sold In KG", field_type="bool"),
            }
        ),
        "client": MappingProxyType(
            {
                "id": _field("id", "_id", "clientId", "client_id"),
                "clientName": _field("clientName", "Client Name", "name", "contactName"),
                "companyName": _field("companyName", "Company Name", "company"),
                "email": _field("email", "E-mail", "Email Address"),
                "phone": _field("phone", "Phone Number", "mobile", "contact"),
                "address": _field("address", "Billing Address"),
                "country": _field("country", "Country Name"),
            }
        ),
        "salesperson": MappingProxyType(
            {
                "id": _field("id", "_id", "salespersonId"),
                "name": _field("name", "salespersonName", "Sales Person", "salesman", "salesperson"),
                "email": _field("email", "E-mail"),
                "phone": _field("phone", "Phone Number", "mobile"),
            }
        ),
        "color": MappingProxyType(
            {
                "id": _field("id", "_id", "colorId"),
                "colorname": _field("colorname", "Color Name", "name", "color"),
                "value": _field("value", "hex", "Hex Code"),
            }
        ),
        "style": MappingProxyType(
            {
                "id": _field("id", "_id", "styleId"),
                "stylename": _field("stylename", "Style Name", "name", "style"),
                "description": _field("description", "details"),
            }
        ),
        "quote": MappingProxyType(
            {
                "id": _field("id", "_id", "quoteId"),
                "clientId": _field("clientId", "customerId"),
                "clientName": _field("clientName", "customerName", "client"),
                "salesperson": _field("salesperson", "salesman", "salespersonName"),
                "items": _field("items", "lineItems", field_type="list"),
                "total": _field("total", "totalAmount", "grandTotal", field_type="float"),
                "currency": _field("currency", default="USD"),
                "status": _field("status", "quoteStatus"),
                "createdAt": _field("createdAt", "created_at", "date"),
            }
        ),
        "order": MappingProxyType(
            {
                "id": _field("id", "_id", "orderId"),
                "orderNumber": _field("orderNumber", "order_no"),
                "quoteId": _field("quoteId", "originalQuoteId"),
                "clientName": _field("clientName", "customerName", "client"),
                "salesperson": _field("salesperson", "salesman", "salespersonName"),
                "items": _field("items", "lineItems", field_type="list"),
                "total": _field("total", "totalAmount", "grandTotal", field_type="float"),
                "currency": _field("currency", default="USD"),
                "status": _field("status", "orderStatus"),
                "orderDate": _field("orderDate", "createdAt", "created_at"),
            }
        ),
    }
)

_TRUE_STRINGS = frozenset({"true", "yes", "1", "y"})
_FOLD_PATTERN = re.compile(r"[\s_\-]+")


def fold_key(key: str) -> str:
    """Case- and spacing-insensitive form of a header, so "Price List Name" matches "pricelistname"."""
    return _FOLD_PATTERN.sub("", str(key)).lower()


class RecordNormalizer:
    """
    Converts raw spreadsheet/JSON rows into the canonical field set of an entity kind.

    For each canonical field the aliases are tried in order and the first present,
    non-empty, coercible value wins. Unknown fields are dropped and missing fields
    get the kind's sentinel (``""``, ``0.0``, ``False`` or ``()``).
    """

    @staticmethod
    def kinds() -> Tuple[str, ...]:
        return tuple(FIELD_ALIASES.keys())

    @staticmethod
    def _fold_record(raw: Mapping[str, Any]) -> Dict[str, Any]:
        folded: Dict[str, Any] = {}
        for key, value in raw.items():
            folded_key = fold_key(key)
            if folded_key not in folded or RecordNormalizer._is_empty(folded[folded_key]):
                folded[folded_key] = value
        return folded

    @staticmethod
    def _is_empty(value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, str):
            return value.strip() == ""
        if isinstance(value, (list, tuple)):
            return len(value) == 0
        return False

    @staticmethod
    def _coerce(value: Any, field_type: str) -> Optional[Any]:
        """Returns the coerced value, or None when the value cannot be used for this field."""
        if field_type == "float":
            if isinstance(value, bool):
                return float(value)
            if isinstance(value, (int, float)):
                return float(value)
            try:
                return float(str(value).replace(",", "").strip())
            except ValueError:
                return None
        if field_type == "bool":
            if isinstance(value, bool):
                return value
            if isinstance(value, str):
                return value.strip().lower() in _TRUE_STRINGS
            return bool(value)
        if field_type == "list":
            if isinstance(value, (list, tuple)):
                return tuple(value)
            return None
        if isinstance(value, (dict, list, tuple)):
            return None
        return str(value).strip()

    @staticmethod
    def normalize(kind: str, raw: Mapping[str, Any], fill_missing: bool = True) -> Dict[str, Any]:
        """
        With ``fill_missing=False`` only the canonical fields the row actually supplies
        are returned, so a partial update never overwrites stored values with sentinels.
        """
        try:
            fields = FIELD_ALIASES[kind]
        except KeyError:
            raise ValueError(f"Unknown entity kind: {kind}") from None

        folded = RecordNormalizer._fold_record(raw or {})
        record: Dict[str, Any] = {}
        for canonical, spec in fields.items():
            if fill_missing:
                record[canonical] = spec.default
            for alias in spec.aliases:
                value = folded.get(fold_key(alias))
                if RecordNormalizer._is_empty(value):
                    continue
                coerced = RecordNormalizer._coerce(value, spec.field_type)
                if coerced is None:
                    logger.debug(f"⚠️ Dropping unusable {kind}.{canonical} value from alias '{alias}': {value!r}")
                    continue
                record[canonical] = coerced
                break
        return record

    @staticmethod
    def normalize_many(kind: str, raws) -> list:
        return [RecordNormalizer.normalize(kind, raw) for raw in raws]


def normalize(kind: str, raw: Mapping[str, Any], fill_missing: bool = True) -> Dict[str, Any]:
    return RecordNormalizer.normalize(kind, raw, fill_missing)
