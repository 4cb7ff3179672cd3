"""GridRival: merit-order market clearing and round lifecycle for an NEM training game."""

__version__ = "0.1.0"
