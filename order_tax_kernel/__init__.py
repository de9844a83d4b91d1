"""
Order Tax Kernel

Domain values, exceptions, logging and persistence primitives for the order
tax engine:
- Immutable tax configurations and calculation results
- Typed, coded exceptions
- Structured JSON logging
- SQLAlchemy base classes for the configuration store
"""

__version__ = "0.1.0"
