"""HTTP surface: FastAPI routes, request/response schemas, middleware."""
