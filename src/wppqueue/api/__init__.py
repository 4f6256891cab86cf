"""HTTP API for the redirect queue."""
