"""Shared utilities: logging setup, error hierarchy, concurrency helpers."""
