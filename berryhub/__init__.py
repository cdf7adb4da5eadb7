"""berryhub: device driver hub."""

__version__ = "0.1.0"
