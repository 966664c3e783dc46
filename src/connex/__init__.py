"""Connex - discovery and relationship graph engine for group chats."""

__version__ = "0.1.0"
