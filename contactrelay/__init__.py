"""Contact form relay for static landing pages."""

from contactrelay.version import __version__

__all__ = ["__version__"]
