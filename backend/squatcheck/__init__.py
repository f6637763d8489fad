"""Squat form analysis from pose landmark sequences."""

__version__ = "0.1.0"
