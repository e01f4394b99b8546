"""
Core application utilities.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with request context
- Domain error types and FastAPI dependency helpers
"""
