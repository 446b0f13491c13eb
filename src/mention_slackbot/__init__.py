"""Poll content sources for a search term and announce new items in Slack."""

__version__ = "0.1.0"
