"""
Business logic for the shop, one module per area.

Route handlers call into these modules and never query models
themselves.  Every write goes through :mod:`audit_service` before the
commit.
"""
