from __future__ import annotations

import pytest
import requests

from mention_slackbot.config import AppConfig, TwitterSettings
from mention_slackbot.sources import (
    DevtoSource,
    GithubRepositorySource,
    HackerNewsCommentSource,
    HackerNewsStorySource,
    MastodonSource,
    MediumSource,
    RedditSearchSource,
    SourceError,
    StackOverflowSource,
    SubredditSource,
    TwitterSource,
)

RSS_SAMPLE = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Dokku on Medium</title>
    <link>https://medium.com/tag/dokku/latest</link>
    <item>
      <title>Deploying apps with Dokku</title>
      <link>https://medium.com/@alice/deploying-apps-with-dokku-5a1b2c3d4e5f?source=rss----tag_dokku-5</link>
      <guid isPermaLink="false">https://medium.com/p/5a1b2c3d4e5f</guid>
      <category>dokku</category>
      <category>paas</category>
      <dc:creator>Alice</dc:creator>
      <pubDate>Mon, 16 Oct 2023 10:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>
"""


class _DummyResponse:
    def __init__(self, body: object = None, *, status_code: int = 200, content: bytes = b"") -> None:
        self._body = body
        self.status_code = status_code
        self.content = content
        self.text = content.decode("utf-8") if content else ""
        self.url = ""

    def json(self) -> object:
        if self._body is None:
            raise ValueError("no json")
        return self._body

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class _FakeGet:
    """Serves queued responses and records every request."""

    def __init__(self, *responses: _DummyResponse) -> None:
        self.responses = list(responses)
        self.calls: list[dict] = []

    def __call__(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        return self.responses.pop(0)


def _install(monkeypatch, *responses: _DummyResponse) -> _FakeGet:
    fake_get = _FakeGet(*responses)
    monkeypatch.setattr("requests.get", fake_get)
    return fake_get


def _config(**overrides) -> AppConfig:
    return AppConfig(tag="dokku", **overrides)


def test_stackoverflow_paginates_until_empty_page(monkeypatch) -> None:
    questions = [
        {
            "question_id": 100 + index,
            "title": "Dokku &amp; nginx",
            "link": f"https://stackoverflow.com/q/{100 + index}",
            "is_answered": index == 0,
            "view_count": 5,
            "answer_count": 1,
            "tags": ["dokku", "nginx"],
            "creation_date": 1700000000,
            "owner": {"display_name": "alice", "link": "https://stackoverflow.com/u/1"},
        }
        for index in range(100)
    ]
    fake_get = _install(
        monkeypatch,
        _DummyResponse({"items": questions, "has_more": True}),
        _DummyResponse({"items": [], "has_more": False}),
    )

    items = StackOverflowSource(_config(site="serverfault")).fetch()

    assert len(items) == 100
    assert [item.natural_key for item in items] == list(range(100, 200))
    assert len(fake_get.calls) == 2
    assert [call["params"]["page"] for call in fake_get.calls] == [1, 2]
    assert fake_get.calls[0]["params"]["site"] == "serverfault"
    assert fake_get.calls[0]["params"]["tagged"] == "dokku"
    message = items[0].to_message()
    assert message.title == "Dokku & nginx"
    assert message.ts == 1700000000
    assert [(field.title, field.value) for field in message.fields] == [
        ("# Views", "5"),
        ("# Answers", "1"),
        ("Answered", "✅"),
        ("Tags", "dokku, nginx"),
    ]


def test_stackoverflow_error_payload_raises(monkeypatch) -> None:
    _install(
        monkeypatch,
        _DummyResponse({"error_id": 502, "error_name": "throttle_violation", "error_message": "slow down"}),
    )

    with pytest.raises(SourceError, match="throttle_violation"):
        StackOverflowSource(_config()).fetch()


def test_github_search_window_end_stops_pagination(monkeypatch) -> None:
    repository = {
        "id": 7,
        "full_name": "dokku/dokku",
        "html_url": "https://github.com/dokku/dokku",
        "description": "A docker-powered PaaS",
        "language": "Shell",
        "stargazers_count": 26000,
        "created_at": "2013-06-02T00:00:00Z",
        "owner": {"login": "dokku", "html_url": "https://github.com/dokku"},
    }
    fake_get = _install(
        monkeypatch,
        _DummyResponse({"items": [repository]}),
        _DummyResponse({"message": "Only the first 1000 search results are available"}, status_code=422),
    )

    items = GithubRepositorySource(_config()).fetch()

    assert [item.natural_key for item in items] == [7]
    assert len(fake_get.calls) == 2
    message = items[0].to_message()
    assert message.body == "A docker-powered PaaS"
    assert ("# Stars", "26000") in [(field.title, field.value) for field in message.fields]


def test_github_other_http_errors_propagate(monkeypatch) -> None:
    _install(monkeypatch, _DummyResponse({}, status_code=503))

    with pytest.raises(requests.HTTPError):
        GithubRepositorySource(_config()).fetch()


def _hn_hit(object_id: str, highlighted_title: str, **extra: object) -> dict:
    hit = {
        "objectID": object_id,
        "title": highlighted_title.replace("<em>", "").replace("</em>", ""),
        "author": "pg",
        "points": 10,
        "num_comments": 3,
        "created_at_i": 1700000000,
        "_highlightResult": {
            "title": {"value": highlighted_title, "matchLevel": "full", "matchedWords": ["dokku"]},
        },
    }
    hit.update(extra)
    return hit


def test_hackernews_story_drops_fuzzy_hits(monkeypatch) -> None:
    fake_get = _install(
        monkeypatch,
        _DummyResponse(
            {
                "hits": [
                    _hn_hit("1", "Show HN: <em>Dokku</em> 1.0", url="https://dokku.com"),
                    _hn_hit("2", "Why I left <em>Docker</em>"),
                ]
            }
        ),
        _DummyResponse({"hits": []}),
    )

    items = HackerNewsStorySource(_config()).fetch()

    assert [item.natural_key for item in items] == ["1"]
    assert [call["params"]["page"] for call in fake_get.calls] == [0, 1]
    assert fake_get.calls[0]["params"]["tags"] == "story"
    message = items[0].to_message()
    assert message.title_link == "https://news.ycombinator.com/item?id=1"
    assert ("Original Link", "https://dokku.com") in [
        (field.title, field.value) for field in message.fields
    ]


def test_hackernews_comment_message(monkeypatch) -> None:
    comment = {
        "objectID": "55",
        "author": "jdoe",
        "story_title": "Self-hosting in 2024",
        "story_url": "https://blog.example.com/self-hosting",
        "comment_text": '<p>I use <a href="https://dokku.com">dokku</a> for this.</p>',
        "created_at": "2024-01-02T03:04:05.000Z",
        "_highlightResult": {
            "comment_text": {"value": "I use <em>dokku</em>", "matchedWords": ["dokku"]},
        },
    }
    fake_get = _install(monkeypatch, _DummyResponse({"hits": [comment]}), _DummyResponse({"hits": []}))

    items = HackerNewsCommentSource(_config()).fetch()

    assert fake_get.calls[0]["params"]["tags"] == "comment"
    message = items[0].to_message()
    assert items[0].title == "Comment on: Self-hosting in 2024"
    assert message.body == "I use <https://dokku.com|dokku> for this."
    assert message.author_link == "https://news.ycombinator.com/user?id=jdoe"


def test_devto_paginates_by_tag(monkeypatch) -> None:
    articles = [
        {
            "id": 11,
            "title": "Dokku on a Pi",
            "url": "https://dev.to/bob/dokku-on-a-pi",
            "user": {"username": "bob"},
            "published_at": "2024-01-01T00:00:00Z",
        },
        {"id": 12, "title": "Dokku again", "url": "https://dev.to/bob/dokku-again", "user": {}},
    ]
    fake_get = _install(monkeypatch, _DummyResponse(articles), _DummyResponse([]))

    items = DevtoSource(_config()).fetch()

    assert [item.natural_key for item in items] == [11, 12]
    assert fake_get.calls[0]["params"] == {"per_page": 100, "page": 1, "tag": "dokku"}
    message = items[0].to_message()
    assert message.author_link == "https://dev.to/bob"
    assert message.ts == 1704067200


def test_mastodon_renders_content_as_mrkdwn(monkeypatch) -> None:
    status = {
        "id": "111",
        "url": "https://mastodon.social/@carol/111",
        "content": '<p>Moved to <a href="https://mastodon.social/tags/dokku">#<span>dokku</span></a> today</p>',
        "created_at": "2024-01-01T00:00:00.000Z",
        "account": {"acct": "carol", "url": "https://mastodon.social/@carol"},
        "tags": [{"name": "dokku"}],
    }
    fake_get = _install(monkeypatch, _DummyResponse([status]))

    items = MastodonSource(_config()).fetch()

    assert fake_get.calls[0]["url"] == "https://mastodon.social/api/v1/timelines/tag/dokku"
    assert fake_get.calls[0]["params"] == {"limit": 40}
    message = items[0].to_message()
    assert items[0].natural_key == "111"
    assert message.body == "Moved to <https://mastodon.social/tags/dokku|#dokku> today"
    assert ("Tags", "#dokku") in [(field.title, field.value) for field in message.fields]


def test_medium_reads_tag_feed(monkeypatch) -> None:
    fake_get = _install(monkeypatch, _DummyResponse(content=RSS_SAMPLE))

    items = MediumSource(_config()).fetch()

    assert fake_get.calls[0]["url"] == "https://medium.com/feed/tag/dokku"
    assert len(items) == 1
    article = items[0]
    assert article.natural_key == "5a1b2c3d4e5f"
    assert article.link == "https://medium.com/@alice/deploying-apps-with-dokku-5a1b2c3d4e5f"
    message = article.to_message()
    assert message.author_name == "Alice"
    assert message.ts == 1697450400
    assert [(field.title, field.value) for field in message.fields] == [("Tags", "dokku, paas")]


def _reddit_listing(*posts: dict) -> dict:
    return {"kind": "Listing", "data": {"children": [{"kind": "t3", "data": post} for post in posts]}}


def test_reddit_search_builds_permalink_from_fullname(monkeypatch) -> None:
    post = {
        "id": "abc123",
        "name": "t3_abc123",
        "title": "Dokku vs Coolify",
        "subreddit": "selfhosted",
        "author": "dave",
        "score": 42,
        "num_comments": 7,
        "url": "https://example.com/article",
        "is_self": False,
        "created_utc": 1700000000.0,
    }
    fake_get = _install(monkeypatch, _DummyResponse(_reddit_listing(post)))

    items = RedditSearchSource(_config()).fetch()

    assert fake_get.calls[0]["params"]["q"] == "dokku"
    assert fake_get.calls[0]["headers"]["User-Agent"].startswith("python:mention-slackbot")
    assert items[0].natural_key == "abc123"
    message = items[0].to_message()
    assert message.title_link == "https://www.reddit.com/r/selfhosted/comments/abc123/"
    assert message.ts == 1700000000
    assert ("Original Link", "https://example.com/article") in [
        (field.title, field.value) for field in message.fields
    ]


def test_subreddit_source_reads_newest_posts(monkeypatch) -> None:
    post = {"id": "zz9", "title": "Release 0.34", "subreddit": "dokku", "is_self": True}
    fake_get = _install(monkeypatch, _DummyResponse(_reddit_listing(post)))

    items = SubredditSource(_config()).fetch()

    assert fake_get.calls[0]["url"] == "https://www.reddit.com/r/dokku/new.json"
    assert items[0].source_type == "reddit_subreddit"
    assert items[0].natural_key == "zz9"


def test_twitter_requires_bearer_token() -> None:
    assert TwitterSource(_config()).is_configured() is False
    assert TwitterSource(_config(twitter=TwitterSettings(bearer_token="t"))).is_configured() is True


def test_twitter_filters_noise(monkeypatch) -> None:
    payload = {
        "data": [
            {"id": "1", "text": "Shipping with dokku today", "author_id": "10", "lang": "en"},
            {"id": "2", "text": "new release", "author_id": "20", "lang": "en"},
            {
                "id": "3",
                "text": "RT great dokku post",
                "author_id": "10",
                "lang": "en",
                "referenced_tweets": [{"type": "retweeted", "id": "1"}],
            },
            {
                "id": "4",
                "text": "thanks @dokku_project",
                "author_id": "10",
                "lang": "en",
                "entities": {"mentions": [{"username": "dokku_project", "id": "20"}]},
            },
        ],
        "includes": {
            "users": [
                {"id": "10", "username": "erin", "name": "Erin"},
                {"id": "20", "username": "dokku_project", "name": "Dokku"},
            ]
        },
    }
    fake_get = _install(monkeypatch, _DummyResponse(payload))

    items = TwitterSource(_config(twitter=TwitterSettings(bearer_token="t"))).fetch()

    assert fake_get.calls[0]["headers"]["Authorization"] == "Bearer t"
    assert fake_get.calls[0]["params"]["max_results"] == 100
    assert [item.natural_key for item in items] == ["1"]
    assert items[0].to_message().title_link == "https://twitter.com/erin/status/1"


def test_twitter_error_payload_raises(monkeypatch) -> None:
    _install(monkeypatch, _DummyResponse({"errors": [{"message": "Invalid query"}]}))

    with pytest.raises(SourceError, match="Invalid query"):
        TwitterSource(_config(twitter=TwitterSettings(bearer_token="t"))).fetch()


def test_empty_first_page_issues_one_request(monkeypatch) -> None:
    fake_get = _install(monkeypatch, _DummyResponse([]))

    assert DevtoSource(_config()).fetch() == []
    assert len(fake_get.calls) == 1
