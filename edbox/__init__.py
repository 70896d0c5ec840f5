"""
EdBox Generation Service.

Staged generative pipelines for courses, research packages and the
personalized learning feed.
"""

__version__ = "1.0.0"
