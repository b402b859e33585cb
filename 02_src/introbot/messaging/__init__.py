"""Messaging module."""

from .messenger import IMessenger, OutboxMessenger

__all__ = ["IMessenger", "OutboxMessenger"]
