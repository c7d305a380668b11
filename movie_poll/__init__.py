"""
Movie Poll - group movie voting with appeal-based ranking
"""

__version__ = "1.0.0"
