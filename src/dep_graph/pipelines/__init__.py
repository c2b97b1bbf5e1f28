"""High-level orchestration of analysis runs."""
