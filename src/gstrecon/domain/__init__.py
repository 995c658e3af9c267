"""Domain layer for gstrecon."""
