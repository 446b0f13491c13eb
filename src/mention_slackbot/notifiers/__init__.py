"""Notifier implementations."""

from mention_slackbot.config import AppConfig

from .base import NotificationError, Notifier
from .slack_webhook import (
    SlackApiNotifier,
    SlackWebhookNotifier,
    build_slack_payload,
    render_slack_message_text,
)


def build_notifier(config: AppConfig) -> Notifier:
    """Pick the Web API transport when a token is configured, else the webhook."""
    timeout = config.http.timeout_seconds
    if config.slack.uses_api:
        return SlackApiNotifier(config.slack, enabled=config.notify_slack, timeout_seconds=timeout)
    return SlackWebhookNotifier(config.slack, enabled=config.notify_slack, timeout_seconds=timeout)


__all__ = [
    "NotificationError",
    "Notifier",
    "SlackApiNotifier",
    "SlackWebhookNotifier",
    "build_notifier",
    "build_slack_payload",
    "render_slack_message_text",
]
