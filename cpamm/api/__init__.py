"""HTTP API for a single development pool."""
