"""HTTP API of the photo gallery (FastAPI)."""
