"""
Built-in transformers.
"""

from __future__ import annotations

from .auth import AuthTransformer
from .model import ModelTransformer
from .resolvers import ResolverTemplates

__all__ = [
    "AuthTransformer",
    "ModelTransformer",
    "ResolverTemplates",
    "default_transformers",
]


def default_transformers() -> list:
    """Fresh instances of the built-in transformers, in registration order."""
    return [ModelTransformer(), AuthTransformer()]
