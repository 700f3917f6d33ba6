"""Business services for the Review Filter API."""
