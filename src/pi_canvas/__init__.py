"""Pi Canvas: one digit of pi per participant, rendered as a chord wallpaper."""

__version__ = "0.1.0"
