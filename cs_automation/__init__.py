"""Customer-service automation core."""
