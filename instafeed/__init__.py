"""Instagram login relay and feed client."""

__version__ = "1.0.0"
