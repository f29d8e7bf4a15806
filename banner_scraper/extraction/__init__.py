"""
Extraction Package
==================

Browser session control, interactive annotation, heuristic extraction and
replay of learned selectors.
"""

from .locator import derive_locator
from .session import PageSession, PageHandle
from .annotation import AnnotationSession
from .heuristic import extract_auto
from .replay import replay
from .orchestrator import Orchestrator, merge_results

__all__ = [
    'derive_locator', 'PageSession', 'PageHandle', 'AnnotationSession',
    'extract_auto', 'replay', 'Orchestrator', 'merge_results',
]
