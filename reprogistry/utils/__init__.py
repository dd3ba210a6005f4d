"""Shared helpers: URL handling, versions, fallback ladders, output parsing."""
