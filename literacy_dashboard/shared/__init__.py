"""Shared building blocks: privacy suppression, models and utilities."""
