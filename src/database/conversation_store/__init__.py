"""Conversation store package."""
