"""News Radar: news source scraping with headless-browser and RSS fallback."""

__version__ = "0.1.0"
