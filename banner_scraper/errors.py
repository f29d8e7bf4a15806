"""
Errors surfaced by the extraction core.

Readiness timeouts and single-locator failures are logged where they happen
and never raised; only the classes below cross component boundaries.
"""


class ScraperError(Exception):
    """Base class for scraper errors. ``str(err)`` is safe to show a user."""


class ValidationError(ScraperError):
    """Bad URL or mode. Raised before any browser work."""


class PageLoadFailure(ScraperError):
    """Navigation failed on every attempt of the retry policy."""

    def __init__(self, url: str, attempts: int, last_error: str = ""):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed to load page after {attempts} attempts")


class PersistenceFailure(ScraperError):
    """A selector set or raw result could not be written."""
