"""
HTTP layer: FastAPI routes and the status page.
"""
