"""Configuration package."""

from cie.config.settings import Settings

__all__ = ["Settings"]
