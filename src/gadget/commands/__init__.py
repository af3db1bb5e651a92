"""Device operations: media capture, display settings, and wireless debugging."""
