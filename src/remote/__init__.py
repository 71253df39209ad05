"""Clients for the locator gateway and session tracker services."""
