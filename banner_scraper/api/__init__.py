"""
API Package
===========

REST API endpoints for the banner scraper.
"""

from .routes import register_routes

__all__ = ['register_routes']
