"""HTTP API layer for the build-job service."""
