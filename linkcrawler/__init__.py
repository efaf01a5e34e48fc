"""
Link Crawler

A bounded-concurrency breadth-first web crawler.
"""

__version__ = "1.0.0"
__description__ = "A budget-limited breadth-first crawler that follows HTML links"
