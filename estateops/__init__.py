"""EstateOps temporal lifecycle and notification delivery core."""
