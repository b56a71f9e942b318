"""Thin wrappers over the museum backend REST endpoints."""
