"""
Storage Package
===============

Per-domain selector sets and the raw extraction result sink.
"""

from .selector_store import SelectorStore, project_selectors
from .database import ResultDatabase

__all__ = ['SelectorStore', 'ResultDatabase', 'project_selectors']
