"""HTTP API for the Review Filter service."""
