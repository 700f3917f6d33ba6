"""Core configuration, security and logging."""
