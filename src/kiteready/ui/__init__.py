"""Host UI integration: event bus and notifications."""
