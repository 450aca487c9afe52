"""snapshim FastAPI application."""
