"""Application bootstrap helpers for the review engine."""

from .runtime import bootstrap
from .settings import AppSettings

__all__ = ["bootstrap", "AppSettings"]
