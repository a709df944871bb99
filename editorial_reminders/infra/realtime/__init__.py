"""Realtime live-update broadcasting."""

from editorial_reminders.infra.realtime.broadcaster import (
    RealtimeBroadcaster,
    conversation_topic,
    create_broadcaster,
    get_broadcaster,
    stop_broadcaster,
)

__all__ = [
    "RealtimeBroadcaster",
    "conversation_topic",
    "create_broadcaster",
    "get_broadcaster",
    "stop_broadcaster",
]
