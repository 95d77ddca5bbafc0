"""HTTP API for the quote platform."""
