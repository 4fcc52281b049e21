"""Async event bus."""
