"""
Vidshelf - public video catalog backend.
"""

__version__ = "0.1.0"
