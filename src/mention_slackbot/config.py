from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULT_DATABASE_FILE = "notifications.db"
DEFAULT_MASTODON_INSTANCE = "https://mastodon.social"

# Microblog noise lists; a key under `twitter:` in YAML replaces the matching list.
DEFAULT_TWITTER_ALLOW_WORDS = ("caprover", "coolify", "heroku")
DEFAULT_TWITTER_IGNORE_LANGUAGES = ("es", "et", "ja", "in", "it")
DEFAULT_TWITTER_IGNORE_AUTHORS = ("dokku",)
DEFAULT_TWITTER_IGNORE_WORDS = (
    "caliphate",
    "chennai",
    "chatta",
    "chettha",
    "comte",
    "conde",
    "disney",
    "dokkan",
    "hera",
    "imarat",
    "isis",
    "luke",
    "kadyrov",
    "movie",
    "shiseru",
    "sushi",
    "tamil",
    "theatre",
    "theater",
    "umarov",
)


class ConfigError(ValueError):
    """Raised when configuration is invalid."""


@dataclass(slots=True, frozen=True)
class SlackSettings:
    token: str = ""
    channel_id: str = ""
    webhook_url: str = ""
    channel: str = ""
    username: str = ""

    @property
    def uses_api(self) -> bool:
        return bool(self.token)


@dataclass(slots=True, frozen=True)
class StorageSettings:
    path: str = DEFAULT_DATABASE_FILE


@dataclass(slots=True, frozen=True)
class TwitterSettings:
    bearer_token: str = ""
    allow_words: tuple[str, ...] = DEFAULT_TWITTER_ALLOW_WORDS
    ignore_words: tuple[str, ...] = DEFAULT_TWITTER_IGNORE_WORDS
    ignore_languages: tuple[str, ...] = DEFAULT_TWITTER_IGNORE_LANGUAGES
    ignore_authors: tuple[str, ...] = DEFAULT_TWITTER_IGNORE_AUTHORS


@dataclass(slots=True, frozen=True)
class GithubSettings:
    token: str = ""


@dataclass(slots=True, frozen=True)
class MastodonSettings:
    instance: str = DEFAULT_MASTODON_INSTANCE


@dataclass(slots=True, frozen=True)
class HttpSettings:
    timeout_seconds: int = 30


@dataclass(slots=True, frozen=True)
class AppConfig:
    tag: str
    site: str = "stackoverflow"
    notify_slack: bool = False
    slack: SlackSettings = field(default_factory=SlackSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    enabled_sources: tuple[str, ...] | None = None
    twitter: TwitterSettings = field(default_factory=TwitterSettings)
    github: GithubSettings = field(default_factory=GithubSettings)
    mastodon: MastodonSettings = field(default_factory=MastodonSettings)
    http: HttpSettings = field(default_factory=HttpSettings)
    isolate_source_failures: bool = False
    log_level: str = "INFO"
    log_format: str = "text"


def _as_string_list(value: Any, *, field_name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        raise ConfigError(f"{field_name} must be a list of strings, got: {type(value)!r}")
    return [str(item).strip() for item in value if str(item).strip()]


def _as_bool(value: Any, *, field_name: str) -> bool:
    if isinstance(value, bool):
        return value

    if isinstance(value, int) and value in {0, 1}:
        return bool(value)

    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes", "on"}:
            return True
        if normalized in {"false", "0", "no", "off", ""}:
            return False

    raise ConfigError(f"{field_name} must be a boolean")


def _as_int(value: Any, *, field_name: str, minimum: int | None = None) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be an integer")

    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be an integer") from exc

    if minimum is not None and parsed < minimum:
        raise ConfigError(f"{field_name} must be >= {minimum}")
    return parsed


def _as_mapping(value: Any, *, field_name: str) -> dict[str, Any]:
    value = value or {}
    if not isinstance(value, dict):
        raise ConfigError(f"{field_name} must be a mapping")
    return value


def _resolve_relative_path(base_dir: Path, raw_path: str) -> str:
    candidate = Path(raw_path).expanduser()
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def _read_yaml(config_path: Path) -> dict[str, Any]:
    with config_path.open("r", encoding="utf-8") as handle:
        parsed = yaml.safe_load(handle) or {}

    if not isinstance(parsed, dict):
        raise ConfigError("Config root must be a mapping")
    return parsed


def _pick(environ: Mapping[str, str], env_name: str, fallback: Any) -> Any:
    value = environ.get(env_name)
    if value is None or not value.strip():
        return fallback
    return value.strip()


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    required: bool = False,
) -> AppConfig:
    """Build the run configuration from an optional YAML file and the environment.

    Environment variables win over YAML values. ``required`` makes a missing
    config file an error; otherwise the environment alone is enough.
    """
    environ = os.environ if environ is None else environ

    parsed: dict[str, Any] = {}
    base_dir = Path.cwd()
    if path is not None:
        config_path = Path(path).expanduser().resolve()
        if config_path.exists():
            parsed = _read_yaml(config_path)
            base_dir = config_path.parent
        elif required:
            raise ConfigError(f"Config file not found: {config_path}")

    tag = str(_pick(environ, "TAG", parsed.get("tag", "")) or "").strip()
    if not tag:
        raise ConfigError("No search tag configured (set TAG or 'tag')")

    raw_slack = _as_mapping(parsed.get("slack"), field_name="slack")
    slack_settings = SlackSettings(
        token=str(_pick(environ, "SLACK_TOKEN", raw_slack.get("token", "")) or "").strip(),
        channel_id=str(
            _pick(environ, "SLACK_CHANNEL_ID", raw_slack.get("channel_id", "")) or ""
        ).strip(),
        webhook_url=str(
            _pick(environ, "SLACK_WEBHOOK_URL", raw_slack.get("webhook_url", "")) or ""
        ).strip(),
        channel=str(_pick(environ, "SLACK_CHANNEL", raw_slack.get("channel", "")) or "").strip(),
        username=str(
            _pick(environ, "SLACK_USERNAME", raw_slack.get("username", "")) or ""
        ).strip(),
    )

    notify_slack = _as_bool(
        _pick(environ, "NOTIFY_SLACK", parsed.get("notify_slack", False)),
        field_name="notify_slack",
    )
    if notify_slack:
        _validate_slack_credentials(slack_settings)

    raw_storage = _as_mapping(parsed.get("storage"), field_name="storage")
    storage_path = str(
        _pick(environ, "DATABASE_FILE", raw_storage.get("path", DEFAULT_DATABASE_FILE))
        or DEFAULT_DATABASE_FILE
    ).strip()

    raw_sources = _pick(environ, "SOURCES", parsed.get("sources"))
    enabled_sources = (
        tuple(_as_string_list(raw_sources, field_name="sources"))
        if raw_sources is not None
        else None
    )
    if enabled_sources is not None and not enabled_sources:
        enabled_sources = None

    raw_twitter = _as_mapping(parsed.get("twitter"), field_name="twitter")
    twitter_settings = TwitterSettings(
        bearer_token=str(
            _pick(environ, "TWITTER_BEARER_TOKEN", raw_twitter.get("bearer_token", "")) or ""
        ).strip(),
        allow_words=_word_list(raw_twitter, "allow_words", DEFAULT_TWITTER_ALLOW_WORDS),
        ignore_words=_word_list(raw_twitter, "ignore_words", DEFAULT_TWITTER_IGNORE_WORDS),
        ignore_languages=_word_list(
            raw_twitter, "ignore_languages", DEFAULT_TWITTER_IGNORE_LANGUAGES
        ),
        ignore_authors=_word_list(
            raw_twitter, "ignore_authors", DEFAULT_TWITTER_IGNORE_AUTHORS
        ),
    )

    raw_github = _as_mapping(parsed.get("github"), field_name="github")
    raw_mastodon = _as_mapping(parsed.get("mastodon"), field_name="mastodon")
    raw_http = _as_mapping(parsed.get("http"), field_name="http")

    mastodon_instance = str(
        _pick(environ, "MASTODON_INSTANCE", raw_mastodon.get("instance", DEFAULT_MASTODON_INSTANCE))
        or DEFAULT_MASTODON_INSTANCE
    ).strip().rstrip("/")

    log_format = str(_pick(environ, "LOG_FORMAT", parsed.get("log_format", "text"))).lower()
    if log_format not in {"text", "json"}:
        raise ConfigError("log_format must be 'text' or 'json'")

    return AppConfig(
        tag=tag,
        site=str(_pick(environ, "SITE", parsed.get("site", "stackoverflow")) or "stackoverflow"),
        notify_slack=notify_slack,
        slack=slack_settings,
        storage=StorageSettings(path=_resolve_relative_path(base_dir, storage_path)),
        enabled_sources=enabled_sources,
        twitter=twitter_settings,
        github=GithubSettings(
            token=str(_pick(environ, "GITHUB_TOKEN", raw_github.get("token", "")) or "").strip()
        ),
        mastodon=MastodonSettings(instance=mastodon_instance),
        http=HttpSettings(
            timeout_seconds=_as_int(
                _pick(environ, "HTTP_TIMEOUT_SECONDS", raw_http.get("timeout_seconds", 30)),
                field_name="http.timeout_seconds",
                minimum=1,
            )
        ),
        isolate_source_failures=_as_bool(
            _pick(
                environ,
                "ISOLATE_SOURCE_FAILURES",
                parsed.get("isolate_source_failures", False),
            ),
            field_name="isolate_source_failures",
        ),
        log_level=str(_pick(environ, "LOG_LEVEL", parsed.get("log_level", "INFO"))).upper(),
        log_format=log_format,
    )


def _word_list(
    raw_twitter: dict[str, Any], key: str, default: tuple[str, ...]
) -> tuple[str, ...]:
    if key not in raw_twitter:
        return default
    values = _as_string_list(raw_twitter[key], field_name=f"twitter.{key}")
    return tuple(item.lower() for item in values)


def _validate_slack_credentials(settings: SlackSettings) -> None:
    if settings.token:
        if not settings.channel_id:
            raise ConfigError("SLACK_CHANNEL_ID is required when SLACK_TOKEN is set")
        return
    if not settings.webhook_url:
        raise ConfigError(
            "Notifications are enabled but no Slack credentials are configured "
            "(set SLACK_TOKEN and SLACK_CHANNEL_ID, or SLACK_WEBHOOK_URL)"
        )
