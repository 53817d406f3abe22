"""Personalized Hacker News digest that learns from your reactions."""

__version__ = "0.1.0"
