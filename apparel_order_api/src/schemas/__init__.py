"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by aggregate (orders, gates, change requests, quality)
plus common models such as the error envelope.
"""

from .common import MessageResponse  # noqa: F401
