"""Logging and telemetry utilities."""
