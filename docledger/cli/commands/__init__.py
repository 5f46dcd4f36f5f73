"""Individual CLI commands."""
