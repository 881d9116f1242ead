"""Territory Intelligence API package."""
