"""Notification adapters."""

from darkhorse.adapters.notifications.email import EmailConfig, EmailNotifier

__all__ = ["EmailNotifier", "EmailConfig"]
