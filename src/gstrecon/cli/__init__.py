"""Command line interface for gstrecon."""
