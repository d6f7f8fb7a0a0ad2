"""Core transport, configuration and logging modules."""
