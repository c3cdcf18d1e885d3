"""
Centralized configuration package for the storage gateway service.
"""

from .env import EnvConfig, env

__all__ = [
  "EnvConfig",
  "env",
]
