"""Diffuse - static regression-risk scoring for code changes."""

__version__ = "0.3.0"
