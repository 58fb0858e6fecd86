"""Application layer: FastAPI app, routes, dependencies and middleware."""
