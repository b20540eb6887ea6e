"""Prepare GPT disk images for redistribution after an automated install."""

from .__version__ import __version__

__all__ = ["__version__"]
