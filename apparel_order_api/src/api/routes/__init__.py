"""
API route modules for the order lifecycle.

This package contains subrouters for:
- Orders: creation, status transitions, status history, priority and SLA timeline
- Gates: approval gates and the production gate summary
- Change requests: estimates, filing, quoting, customer response, payment
- Quality: inspection evaluation, QC records and follow-ups

Routers are included from src.api.main (under the /api/v1 prefix).
"""
