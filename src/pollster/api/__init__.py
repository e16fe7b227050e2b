"""FastAPI application: middleware, routes, error handling."""
