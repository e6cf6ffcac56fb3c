"""API routers for the scheduling engine."""
