"""Kitabghar -- request and moderation service for the Sangrachna literary club."""

__version__ = "0.1.0"
