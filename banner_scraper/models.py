"""
Data models for banner content extraction.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple, Union
from enum import Enum
from urllib.parse import urlparse

from banner_scraper.errors import ValidationError


class Category(Enum):
    """What a captured element is. Closed set."""
    TITLE = "title"
    SUBTITLE = "subtitle"
    DESCRIPTION = "description"
    PRICE = "price"
    IMAGE = "image"
    VIDEO = "video"
    BUTTON = "button"
    LINK = "link"
    CTA = "cta"
    TEXT = "text"
    FALLBACK = "fallback"
    ERROR = "error"

    @classmethod
    def annotatable(cls) -> List['Category']:
        """Categories offered in the in-page menu, in menu order."""
        return [cls.TITLE, cls.SUBTITLE, cls.DESCRIPTION, cls.PRICE,
                cls.IMAGE, cls.VIDEO, cls.BUTTON, cls.LINK, cls.CTA]


class ElementKind(Enum):
    """Element shape that decides how a value is read from it."""
    IMAGE = "img"
    BUTTON = "button"
    LINK = "a"
    OTHER = "other"

    @classmethod
    def from_tag(cls, tag: str) -> 'ElementKind':
        tag = (tag or "").lower()
        for kind in (cls.IMAGE, cls.BUTTON, cls.LINK):
            if kind.value == tag:
                return kind
        return cls.OTHER


class ExtractionMode(Enum):
    """Request mode. ``manual`` is the interactive annotation mode."""
    AUTO = "auto"
    INTERACTIVE = "manual"


# A value is plain text or a structured record (image / button / link / background)
ElementValue = Union[str, Dict[str, Any]]


def _locator_field(value) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise ValueError(f"selector must be a string, got {type(value).__name__}")
    return value


@dataclass
class ExtractedElement:
    """One captured fact about a page."""
    category: Category
    value: ElementValue
    locator: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"type": self.category.value}
        if self.locator:
            data["selector"] = self.locator
        data["value"] = self.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'ExtractedElement':
        return cls(
            category=Category(data["type"]),
            value=data.get("value", ""),
            locator=_locator_field(data.get("selector")) or None,
        )


@dataclass(frozen=True)
class SelectorEntry:
    """A learned (category, locator) pair. Values are never stored."""
    category: Category
    locator: str

    def to_dict(self) -> dict:
        return {"type": self.category.value, "selector": self.locator}

    @classmethod
    def from_dict(cls, data: dict) -> 'SelectorEntry':
        locator = _locator_field(data["selector"])
        if not locator:
            raise ValueError("selector is empty")
        return cls(category=Category(data["type"]), locator=locator)


def normalize_domain(url: str) -> str:
    """Hostname of ``url`` with a leading ``www.`` removed."""
    host = (urlparse(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host


@dataclass(frozen=True)
class ExtractionRequest:
    """A validated scrape request."""
    target_url: str
    mode: ExtractionMode

    @property
    def domain(self) -> str:
        return normalize_domain(self.target_url)

    @classmethod
    def parse(cls, url: Any, mode: Any) -> 'ExtractionRequest':
        """
        Validate raw request fields.

        Raises:
            ValidationError: url is not an absolute http(s) URL, or mode is
                not one of ``auto`` / ``manual``.
        """
        if not isinstance(url, str) or not url.startswith("http"):
            raise ValidationError("Invalid URL provided")
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValidationError("Invalid URL provided")

        try:
            parsed_mode = ExtractionMode(mode)
        except ValueError:
            raise ValidationError("Invalid mode. Use 'auto' or 'manual'.")

        return cls(target_url=url, mode=parsed_mode)


@dataclass
class ExtractionOutcome:
    """Result of one extraction request."""
    success: bool
    content: List[ExtractedElement] = field(default_factory=list)
    suggestions: List[SelectorEntry] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> 'ExtractionOutcome':
        return cls(success=False, error=error)

    def to_dict(self) -> dict:
        if not self.success:
            return {"error": self.error}
        return {
            "success": True,
            "content": [el.to_dict() for el in self.content],
            "suggestions": [entry.to_dict() for entry in self.suggestions],
        }


@dataclass(frozen=True)
class RetryPolicy:
    """
    Navigation retry policy.

    Attempt ``n`` (0-based) navigates with ``wait_until[min(n, len - 1)]``,
    so later attempts settle for a more lenient load condition. Between
    attempts the session sleeps ``backoff_ms * (n + 1)``.
    """
    max_attempts: int = 3
    per_attempt_timeout_ms: int = 90000
    backoff_ms: int = 1000
    wait_until: Tuple[str, ...] = ("networkidle", "load", "domcontentloaded")

    def wait_until_for(self, attempt: int) -> str:
        return self.wait_until[min(attempt, len(self.wait_until) - 1)]

    def delay_after(self, attempt: int) -> float:
        """Seconds to sleep after failed attempt ``attempt``."""
        return self.backoff_ms * (attempt + 1) / 1000.0
