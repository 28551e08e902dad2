"""Building blocks for the Spotify protocol: identifiers, credentials, cache, channels, discovery."""

__version__ = "0.3.1"