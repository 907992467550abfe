"""Version information for the TaskForceAI client library."""

__version__ = "1.3.1"
__version_info__ = tuple(int(part) for part in __version__.split("."))
