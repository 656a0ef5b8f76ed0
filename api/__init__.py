"""Dashboard and bridge webhook HTTP endpoints."""
