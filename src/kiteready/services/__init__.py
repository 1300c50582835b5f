"""Configuration services."""
