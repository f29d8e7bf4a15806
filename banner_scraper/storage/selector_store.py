"""
Selector Store
==============

File-based store of learned selector sets, one per normalized domain:

    <base_path>/<domain>/selectors.json

A save replaces the whole set (last writer wins). Concurrent annotation
sessions for the same domain are not coordinated.
"""

import os
import json
import fcntl
import tempfile
from typing import Iterable, List, Any
from pathlib import Path

from banner_scraper.errors import PersistenceFailure
from banner_scraper.logger import get_logger
from banner_scraper.models import ExtractedElement, SelectorEntry

log = get_logger('selector_store')

SELECTORS_FILE = "selectors.json"


class SelectorStore:
    """Manages per-domain selector files"""

    def __init__(self, base_path: str = "scraped_data"):
        """
        Initialize SelectorStore

        Args:
            base_path: Directory holding one sub-directory per domain
        """
        self.base_path = Path(base_path)

    def domain_dir(self, domain: str) -> Path:
        """Get path to a domain's directory"""
        return self.base_path / domain

    def selectors_path(self, domain: str) -> Path:
        return self.domain_dir(domain) / SELECTORS_FILE

    def _atomic_write(self, file_path: Path, data: Any):
        """
        Write JSON data atomically using temp file + rename

        Args:
            file_path: Target file path
            data: Data to write (will be JSON serialized)
        """
        temp_fd, temp_path = tempfile.mkstemp(
            dir=file_path.parent,
            prefix='.tmp_',
            suffix='.json'
        )

        try:
            with os.fdopen(temp_fd, 'w') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)

            os.replace(temp_path, file_path)

        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def _read_json(self, file_path: Path):
        """Read JSON file under a shared lock. None if missing."""
        if not file_path.exists():
            return None

        with open(file_path, 'r') as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_SH)
            try:
                return json.load(f)
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    def load(self, domain: str) -> List[SelectorEntry]:
        """
        Load the selector set for a domain.

        Returns:
            Stored entries in saved order; empty if none are stored or the
            file cannot be read
        """
        path = self.selectors_path(domain)
        try:
            data = self._read_json(path)
        except (OSError, ValueError) as e:
            log.error(f"Error reading stored selectors for {domain}: {e}")
            return []

        if data is None:
            return []
        if not isinstance(data, list):
            log.error(f"Stored selectors for {domain} are not a list, ignoring")
            return []

        entries = []
        for item in data:
            try:
                entries.append(SelectorEntry.from_dict(item))
            except (KeyError, TypeError, ValueError):
                log.warning(f"Skipping malformed stored selector for {domain}: {item!r}")
        return entries

    def save(self, domain: str, entries: Iterable[SelectorEntry]) -> Path:
        """
        Replace the selector set for a domain.

        Raises:
            PersistenceFailure: directory or file could not be written
        """
        entries = list(entries)
        path = self.selectors_path(domain)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._atomic_write(path, [entry.to_dict() for entry in entries])
        except OSError as e:
            raise PersistenceFailure(f"Failed to save selections for {domain}: {e}") from e

        log.info(f"Saved {len(entries)} selectors for {domain}: {path}")
        return path

    def save_elements(self, domain: str, elements: Iterable[ExtractedElement]) -> Path:
        """Save the category + locator projection of extracted elements."""
        return self.save(domain, project_selectors(elements))


def project_selectors(elements: Iterable[ExtractedElement]) -> List[SelectorEntry]:
    """Keep category and locator; entries without a locator cannot be replayed."""
    return [
        SelectorEntry(category=el.category, locator=el.locator)
        for el in elements
        if el.locator
    ]
