"""
Order lifecycle and change-impact engine.

Pure, synchronous rules shared by the workflow services: the order status
graph, approval-gate aggregation, change fee pricing, QC evaluation and SLA
projection. Nothing in this package performs I/O.
"""
from src.engine.results import Accepted, EngineError, Rejected, TransitionResult  # noqa: F401
