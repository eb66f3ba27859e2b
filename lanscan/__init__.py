"""lanscan - concurrent subnet scanner with device classification and Wake-on-LAN."""

__version__ = "1.0.0"
