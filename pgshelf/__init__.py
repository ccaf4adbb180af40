"""
pgshelf - PostgreSQL dumps on a shelf

Date-sharded backup storage with tiered retention and namespace pruning.
"""

try:
    from importlib.metadata import version

    __version__ = version("pgshelf")
except Exception:
    __version__ = "0.0.0"  # Fallback for development
