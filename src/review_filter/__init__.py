"""Review Filter: role-based access and moderation for course reviews."""

__version__ = "0.1.0"
