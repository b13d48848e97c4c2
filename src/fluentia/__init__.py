"""Fluentia: spaced-repetition scheduling and offline-first progress sync."""

from fluentia.consts import VERSION

__version__ = VERSION
