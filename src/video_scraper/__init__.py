"""
Video Scraper - find downloadable video URLs on a web page and relay them.
"""

__version__ = '0.1.0'
