"""
FastAPI routers for the import API.

``imports`` carries every endpoint: entity listing, templates, uploads,
import runs and row corrections.
"""
