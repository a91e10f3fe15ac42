"""Runtime support: configuration, persistence and rate limiting."""
