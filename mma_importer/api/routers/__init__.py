"""
FastAPI routers for organizing API endpoints.
"""
