"""Core configuration for the Pi Canvas service."""
