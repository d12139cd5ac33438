"""Live SSM2 ECU data read over serial and streamed to a browser dashboard."""

__version__ = "0.1.0"
__all__ = ["__version__"]