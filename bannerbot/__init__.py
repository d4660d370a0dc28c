"""Livestream banner capture bot.

Watches a livestream in a headless browser, recognises the alternating
X and Y banners with OCR and posts new ones to a Discord channel.
"""

__version__ = "1.0.0"
