"""Source implementations and registry.

Importing the integration modules registers them; the import order below is
the order sources run in.
"""

from .base import Source, SourceError
from .registry import (
    SourceRegistrationError,
    build_sources,
    register_source,
    registered_source_names,
)
from .stackoverflow import StackOverflowSource
from .github import GithubRepositorySource
from .hackernews import HackerNewsCommentSource, HackerNewsStorySource
from .devto import DevtoSource
from .mastodon import MastodonSource
from .medium import MediumSource
from .reddit import RedditSearchSource, SubredditSource
from .twitter import TwitterSource

__all__ = [
    "DevtoSource",
    "GithubRepositorySource",
    "HackerNewsCommentSource",
    "HackerNewsStorySource",
    "MastodonSource",
    "MediumSource",
    "RedditSearchSource",
    "Source",
    "SourceError",
    "SourceRegistrationError",
    "StackOverflowSource",
    "SubredditSource",
    "TwitterSource",
    "build_sources",
    "register_source",
    "registered_source_names",
]
