"""
Landing Slimmer
---------------
Reduce an HTML landing page and its CSS to one self-contained, minified file.
"""

__version__ = "0.3.0"
