from __future__ import annotations

from typing import Any

import requests

from mention_slackbot.config import SlackSettings
from mention_slackbot.models import Item, Message

from .base import NotificationError, Notifier

SLACK_API_URL = "https://slack.com/api/chat.postMessage"


class SlackWebhookNotifier(Notifier):
    def __init__(
        self,
        settings: SlackSettings,
        *,
        enabled: bool,
        timeout_seconds: int = 15,
    ) -> None:
        super().__init__(enabled=enabled)
        self.settings = settings
        self.timeout_seconds = timeout_seconds

    def build_payload(self, item: Item) -> dict[str, Any]:
        return build_slack_payload(
            item.to_message(),
            channel=self.settings.channel,
            username=self.settings.username,
        )

    def deliver(self, payload: dict[str, Any]) -> None:
        try:
            response = requests.post(
                self.settings.webhook_url,
                json=payload,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise NotificationError(f"Slack webhook request failed: {exc}") from exc
        if response.status_code >= 400:
            raise NotificationError(
                f"Slack webhook returned {response.status_code}: {response.text}"
            )


class SlackApiNotifier(Notifier):
    """Posts through ``chat.postMessage`` with a bot token."""

    def __init__(
        self,
        settings: SlackSettings,
        *,
        enabled: bool,
        timeout_seconds: int = 15,
    ) -> None:
        super().__init__(enabled=enabled)
        self.settings = settings
        self.timeout_seconds = timeout_seconds

    def build_payload(self, item: Item) -> dict[str, Any]:
        return build_slack_payload(
            item.to_message(),
            channel=self.settings.channel_id,
            username=self.settings.username,
        )

    def deliver(self, payload: dict[str, Any]) -> None:
        try:
            response = requests.post(
                SLACK_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.settings.token}"},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise NotificationError(f"Slack API request failed: {exc}") from exc
        if response.status_code >= 400:
            raise NotificationError(
                f"Slack API returned {response.status_code}: {response.text}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise NotificationError(f"Slack API returned invalid JSON: {response.text}") from exc
        if not body.get("ok", False):
            raise NotificationError(f"Slack API error: {body.get('error', 'unknown_error')}")


def build_slack_payload(
    message: Message,
    *,
    channel: str = "",
    username: str = "",
) -> dict[str, Any]:
    attachment: dict[str, Any] = {
        "color": message.color,
        "fallback": message.fallback,
        "author_name": message.author_name,
        "author_link": message.author_link,
        "author_icon": message.author_icon,
        "title": message.title,
        "title_link": message.title_link,
        "footer": message.footer,
        "footer_icon": message.footer_icon,
        "fields": [
            {"title": field.title, "value": field.value, "short": field.short}
            for field in message.fields
        ],
    }
    if message.body:
        attachment["text"] = message.body
        attachment["mrkdwn_in"] = ["text"]
    if message.ts is not None:
        attachment["ts"] = message.ts

    payload: dict[str, Any] = {
        "text": message.text,
        "username": username or message.username,
        "icon_emoji": message.icon_emoji,
        "unfurl_links": False,
        "unfurl_media": False,
        "attachments": [
            {key: value for key, value in attachment.items() if value not in ("", None)}
        ],
    }
    if channel:
        payload["channel"] = channel
    return payload


def render_slack_message_text(message: Message) -> str:
    """Plain-text preview of a message, as printed by ``dry-run``."""
    lines = [message.text]
    if message.author_name:
        lines.append(f"Author: {message.author_name}")
    if message.title and message.title_link:
        lines.append(f"*<{message.title_link}|{message.title}>*")
    elif message.title:
        lines.append(f"*{message.title}*")
    for field in message.fields:
        lines.append(f"*{field.title}:* {field.value}")
    if message.body:
        lines.append(message.body)
    lines.append(message.footer)
    return "\n".join(line for line in lines if line)
