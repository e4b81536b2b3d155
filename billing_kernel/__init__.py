"""
Billing Kernel

Shared foundation for the billing resolution engine:
- Immutable value objects for cases, work codes, rates and discounts
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging
- SQLAlchemy models and read selectors for the reference data store
"""

__version__ = "0.1.0"
