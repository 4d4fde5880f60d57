"""Infrastructure: HTTP pooling, logging, database and rate limiting."""
