"""HTTP API for the Pi Canvas service."""
