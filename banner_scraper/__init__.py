"""
Banner Scraper

Extracts titles, prices, images and buttons from product pages, either from
live human annotation or heuristically, and learns per-site selectors so
later visits can skip the human step.
"""

__version__ = "1.0.0"
