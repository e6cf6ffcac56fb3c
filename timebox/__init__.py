"""Day scheduling engine for time boxes."""
