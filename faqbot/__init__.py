# faqbot/__init__.py
"""FAQ-first LINE bot: hybrid FAQ resolution with a generative fallback."""

__version__ = "0.1.0"
