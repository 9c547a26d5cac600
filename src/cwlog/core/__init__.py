"""Ambient infrastructure: configuration, logging and time."""
