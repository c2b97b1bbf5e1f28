"""Adapters for driving external processes."""
