"""User store package."""
