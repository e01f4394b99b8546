"""
ORM models for orders and their approval gates, change requests and QC records.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .orders import (  # noqa: F401
    Order,
    OrderStatusEvent,
)
from .gates import ApprovalGate  # noqa: F401
from .change_requests import ChangeRequest  # noqa: F401
from .quality import QCRecord  # noqa: F401
