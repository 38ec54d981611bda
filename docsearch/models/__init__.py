"""Pydantic data models shared across providers, services and the API."""
