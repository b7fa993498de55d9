"""Version information for mailflow."""

__version__ = "0.1.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Release information
__title__ = "mailflow"
__description__ = "Browser-driven end-to-end flows for webmail sign-in, send and sign-out"
__author__ = "mailflow Team"
__license__ = "MIT"
__copyright__ = "Copyright 2025-2026 mailflow Team"


def get_version() -> str:
    """Return the current version string."""
    return __version__


def get_version_info() -> tuple[int, ...]:
    """Return the version as a tuple of integers."""
    return __version_info__
