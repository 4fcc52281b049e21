"""HTTP API routers for deals, quotes and pricing."""
