from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def derive_package_id(document_key: str) -> int:
    """
    Derive the integer package id from a Firestore document key.

    Uses Java's String.hashCode (h = 31*h + c over UTF-16 code units,
    wrapped to a signed 32-bit int) so ids stay stable across processes
    and match the ids the mobile clients compute for the same documents.
    Python's built-in hash() is salted per process and must not be used here.
    """
    h = 0
    encoded = document_key.encode("utf-16-be")
    for i in range(0, len(encoded), 2):
        unit = (encoded[i] << 8) | encoded[i + 1]
        h = (31 * h + unit) & _INT32_MASK
    return h - (1 << 32) if h & _INT32_SIGN else h


class InvalidPackageDocument(ValueError):
    """Raised when a stored document cannot be parsed into a PackageRecord."""


def _require(data: Dict[str, Any], name: str, kind) -> Any:
    if name not in data or data[name] is None:
        raise InvalidPackageDocument(f"missing required field '{name}'")
    return _check_type(name, data[name], kind)


def _optional(data: Dict[str, Any], name: str, kind, default=None) -> Any:
    value = data.get(name)
    if value is None:
        return default
    return _check_type(name, value, kind)


def _check_type(name: str, value: Any, kind) -> Any:
    # bool is an int subclass; never accept it for numeric fields
    if kind is int and isinstance(value, bool):
        raise InvalidPackageDocument(f"field '{name}' must be int, got bool")
    if kind is int and isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, kind):
        raise InvalidPackageDocument(
            f"field '{name}' must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


@dataclass
class PackageRecord:
    """
    A lodging package stored in the "package" collection.

    `id` is derived from `document_key` on every read and is never stored.
    `document_key` is the authoritative Firestore document id.
    """
    title: str
    price: int                                   # Smallest currency unit
    description: str = ""
    promo_price: Optional[int] = None
    features: List[str] = field(default_factory=list)
    max_guests: int = 1
    image_url: Optional[str] = None
    is_active: bool = True

    # Identifiers
    id: int = 0
    document_key: Optional[str] = None

    def to_firestore(self) -> Dict[str, Any]:
        """Fields written to Firestore; identifiers are excluded."""
        return {
            "title": self.title,
            "description": self.description,
            "price": self.price,
            "promo_price": self.promo_price,
            "features": list(self.features),
            "max_guests": self.max_guests,
            "image_url": self.image_url,
            "is_active": self.is_active,
        }

    def with_document_key(self, document_key: str) -> "PackageRecord":
        """Copy of this record bound to a document key, with the matching derived id."""
        return replace(self, document_key=document_key, id=derive_package_id(document_key))

    @classmethod
    def from_document(cls, document_key: str, data: Optional[Dict[str, Any]]) -> "PackageRecord":
        """
        Parse a stored document.

        Raises:
            InvalidPackageDocument: If the data is missing or has the wrong shape
        """
        if not isinstance(data, dict):
            raise InvalidPackageDocument(f"document {document_key} has no mapping data")

        features = _optional(data, "features", list, default=[])
        if not all(isinstance(item, str) for item in features):
            raise InvalidPackageDocument("field 'features' must be a list of str")

        return cls(
            title=_require(data, "title", str),
            price=_require(data, "price", int),
            description=_optional(data, "description", str, default=""),
            promo_price=_optional(data, "promo_price", int),
            features=list(features),
            max_guests=_optional(data, "max_guests", int, default=1),
            image_url=_optional(data, "image_url", str),
            is_active=_optional(data, "is_active", bool, default=True),
            id=derive_package_id(document_key),
            document_key=document_key,
        )

    def __repr__(self):
        return f"PackageRecord(id={self.id}, key={self.document_key}, title={self.title!r})"
