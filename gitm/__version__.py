"""Version information for gitm."""

__version__ = "0.1.0"
