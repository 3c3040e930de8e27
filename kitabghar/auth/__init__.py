"""Operator accounts, sessions, API keys and moderation capabilities."""
