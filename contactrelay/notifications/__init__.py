"""Optional fan-out run after the primary email is delivered."""

from contactrelay.notifications.autoresponder import AutoResponder
from contactrelay.notifications.dispatcher import NotificationDispatcher, Notifier
from contactrelay.notifications.slack import SlackNotifier

__all__ = ["AutoResponder", "NotificationDispatcher", "Notifier", "SlackNotifier"]
