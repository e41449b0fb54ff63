"""
Mercado E2E Testing Suite

End-to-end CRUD testing of the external /mercado REST resource
with randomized data, chained identifiers and run reporting.
"""

__version__ = "1.0.0"
