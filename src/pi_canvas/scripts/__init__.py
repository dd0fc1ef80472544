"""Operational scripts for the Pi Canvas service."""
