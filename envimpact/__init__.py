"""Environmental impact report gateway."""

__version__ = "0.1.0"
