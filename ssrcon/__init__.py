"""Console client for the Source RCON protocol."""

__version__ = "1.0.0"
