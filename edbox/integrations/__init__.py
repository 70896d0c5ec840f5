"""
External service integrations for EdBox.

This module contains the clients for generative backends.
"""
