"""HTTP API for the Bonsai Auth service."""
