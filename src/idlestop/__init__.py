"""idlestop: idle shutdown for socket-activated HTTP services."""

__version__ = "0.1.0"
