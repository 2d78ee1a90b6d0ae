"""HTTP layer: FastAPI routes, dependency wiring and error translation."""
