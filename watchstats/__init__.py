"""Cached profile and account watch-behaviour statistics."""

__version__ = "0.1.0"
