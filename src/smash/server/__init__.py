"""HTTP inspection server; the FastAPI application lives in ``smash.server.app``."""
