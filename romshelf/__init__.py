"""
romshelf - ROM library scraper

Scans a ROM collection, looks each game up with metadata and guide
providers, and stores box art, guides and per-game records next to the ROMs.
"""

__version__ = "0.3.0"
