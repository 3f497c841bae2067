"""Clients for external services used by the chat service."""
