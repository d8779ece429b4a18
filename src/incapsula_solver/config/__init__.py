"""Logging and settings for the resolver."""

from .settings import ResolverSettings

__all__ = ["ResolverSettings"]
