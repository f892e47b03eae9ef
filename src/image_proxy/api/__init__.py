"""HTTP API for the Image Proxy Service (FastAPI)."""
