"""
AuthStore - DynamoDB data-access adapter for identity/session frameworks.

Translates relational-style CRUD calls (structured where clauses, sorting,
pagination, batch operations) onto DynamoDB, using either one table per
model or a single shared table with composite keys.
"""

__version__ = "0.3.0"
