"""Build and publish Claude Desktop as a native Arch Linux package."""

__version__ = '0.3.0'
