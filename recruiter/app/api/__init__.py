"""HTTP API for the generation service."""
