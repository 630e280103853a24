"""
Bookshelf: a small self-published e-book platform
"""

__version__ = "1.0.0"
