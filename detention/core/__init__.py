"""Cross-cutting concerns: exceptions, logging and HTTP middleware."""
