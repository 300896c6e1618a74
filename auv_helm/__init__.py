"""Behavior-arbitrating helm for autonomous underwater vehicles."""

__version__ = "0.1.0"
