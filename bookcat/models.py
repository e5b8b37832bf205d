"""
Record model for bookcat.

Plain dataclasses shared by the codecs, the filter engine, the services and
both storage backends. Backends convert to and from these types at their
boundary; nothing above the storage layer sees ORM rows or JSON blobs.
"""

import re
import uuid
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

DEFAULT_CATALOG_NAME = "My Book Catalog"
DEFAULT_CATALOG_ICON = "Library"

CATALOG_ICONS = [
    "Library", "Book", "BookOpen", "Bookmark", "Heart",
    "Star", "Flame", "Sparkles", "Award", "Crown",
]

CATALOG_COLORS = [
    "blue", "green", "red", "purple", "orange", "pink", "teal", "gray",
]

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

# Years may run this far past the current year (announced titles)
MAX_YEARS_AHEAD = 10

# Fields a caller may set through add-book / update-book
BOOK_FORM_FIELDS = (
    "title", "author", "genre", "holiday_category", "cover_image_url",
    "isbn", "publication_year", "description", "tags",
)

CATALOG_UPDATE_FIELDS = ("name", "description", "icon", "color")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def max_publication_year() -> int:
    """Latest publication year accepted anywhere in the system."""
    return utcnow().year + MAX_YEARS_AHEAD


def is_valid_year(year: Optional[int]) -> bool:
    if not isinstance(year, int) or isinstance(year, bool):
        return False
    return 0 < year <= max_publication_year()


def parse_year(value: Optional[str]) -> Optional[int]:
    """
    Parse a year cell from an import file.

    Returns:
        The year, or None when the text is not an integer inside the
        accepted range. Callers decide whether that warrants a warning.
    """
    if value is None:
        return None
    try:
        year = int(value.strip())
    except ValueError:
        return None
    return year if is_valid_year(year) else None


def validate_catalog_color(color: Optional[str]) -> None:
    if color is None:
        return
    if color in CATALOG_COLORS or _HEX_COLOR.match(color):
        return
    raise ValueError(f"Unknown catalog color: {color!r}")


def validate_catalog_icon(icon: Optional[str]) -> None:
    if icon is not None and icon not in CATALOG_ICONS:
        raise ValueError(f"Unknown catalog icon: {icon!r}")


def _format_dt(value: datetime) -> str:
    return value.isoformat()


def _parse_dt(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        return utcnow()
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class ExportFormat(str, Enum):
    """Export choices offered to the user."""
    CSV = "csv"
    XLSX = "xlsx"  # HTML table that spreadsheet applications open directly
    PDF = "pdf"    # Same HTML, rendered for the browser's print dialog


class ImportFormat(str, Enum):
    CSV = "csv"
    HTML = "html"
    UNKNOWN = "unknown"


@dataclass
class Catalog:
    """A named, owned collection of books."""
    id: str
    name: str
    user_id: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = _format_dt(self.created_at)
        data["updated_at"] = _format_dt(self.updated_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Catalog":
        return cls(
            id=data["id"],
            name=data["name"],
            user_id=data.get("user_id"),
            description=data.get("description"),
            icon=data.get("icon"),
            color=data.get("color"),
            created_at=_parse_dt(data.get("created_at")),
            updated_at=_parse_dt(data.get("updated_at")),
        )


@dataclass
class Book:
    """A book stored in a catalog."""
    id: str
    catalog_id: str
    title: str
    author: str
    user_id: Optional[str] = None
    genre: Optional[str] = None
    holiday_category: Optional[str] = None
    cover_image_url: Optional[str] = None
    isbn: Optional[str] = None
    publication_year: Optional[int] = None
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    is_manually_edited: bool = False
    is_favorite: bool = False
    is_read: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = _format_dt(self.created_at)
        data["updated_at"] = _format_dt(self.updated_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Book":
        return cls(
            id=data["id"],
            catalog_id=data["catalog_id"],
            title=data["title"],
            author=data["author"],
            user_id=data.get("user_id"),
            genre=data.get("genre"),
            holiday_category=data.get("holiday_category"),
            cover_image_url=data.get("cover_image_url"),
            isbn=data.get("isbn"),
            publication_year=data.get("publication_year"),
            description=data.get("description"),
            tags=list(data.get("tags") or []),
            is_manually_edited=bool(data.get("is_manually_edited", False)),
            is_favorite=bool(data.get("is_favorite", False)),
            is_read=bool(data.get("is_read", False)),
            created_at=_parse_dt(data.get("created_at")),
            updated_at=_parse_dt(data.get("updated_at")),
        )


@dataclass
class BookFormData:
    """
    Caller-editable book fields.

    This is what the import codecs produce and what add-book consumes.
    Optional fields left as None mean "not supplied".
    """
    title: str
    author: str
    genre: Optional[str] = None
    holiday_category: Optional[str] = None
    cover_image_url: Optional[str] = None
    isbn: Optional[str] = None
    publication_year: Optional[int] = None
    description: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    def validate(self) -> None:
        """Raise ValueError if the record cannot be stored."""
        if not (self.title or "").strip():
            raise ValueError("Book title is required")
        if not (self.author or "").strip():
            raise ValueError("Book author is required")
        if self.publication_year is not None and not is_valid_year(self.publication_year):
            raise ValueError(
                f"Publication year must be between 1 and {max_publication_year()}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookFormData":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["tags"] = list(values.get("tags") or [])
        return cls(**values)


@dataclass
class FilterOptions:
    """
    Conjunction of independent book predicates.

    None (or an empty value) on any field means no constraint from that
    dimension. read and unread are mutually exclusive by convention only.
    """
    favorites: Optional[bool] = None
    read: Optional[bool] = None
    unread: Optional[bool] = None
    genre: Optional[str] = None
    holiday_category: Optional[str] = None
    tags: Optional[List[str]] = None
    search: Optional[str] = None


@dataclass
class ImportResult:
    """Outcome of a single import attempt, consumed by a preview step."""
    success: bool
    books: List[BookFormData] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    total_records: int = 0
    valid_records: int = 0

    @classmethod
    def failure(cls, message: str, total_records: int = 0,
                warnings: Optional[List[str]] = None) -> "ImportResult":
        return cls(
            success=False,
            errors=[message],
            warnings=list(warnings or []),
            total_records=total_records,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ImportSummary:
    """Outcome of committing an ImportResult to storage."""
    attempted: int = 0
    imported: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class ExportArtifact:
    """A rendered export ready to be downloaded or displayed."""
    filename: str
    content: str
    media_type: str
    inline: bool = False
