"""newestcheck: verifies that a "newest" listing is sorted newest first."""

__version__ = "0.1.0"
