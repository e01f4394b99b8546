"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for one aggregate each (orders,
approval gates, change requests, QC records). They never commit on their own;
the calling service owns the transaction.
"""
