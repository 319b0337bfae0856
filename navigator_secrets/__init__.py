"""Navigator Secrets.

File-backed vault of named secrets protected by public-key envelope encryption.
"""
from .version import __version__

__all__ = ["__version__"]
