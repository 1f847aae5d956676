"""dealcache: tiered cache and batch categorization for deal listings."""

from dealcache.version import __version__

__all__ = ["__version__"]
