"""VideoTube backend: accounts, sessions and channel profiles."""

__version__ = "0.1.0"
