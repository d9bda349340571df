"""
Settlement Kernel

Shared infrastructure for the supplier settlement engine:
- Typed exceptions with machine-readable codes
- Structured JSON logging
- SQLAlchemy base classes, engine and unit-of-work scope
- Injectable clock and workflow primitives
- Human-readable document numbering
"""

__version__ = "0.1.0"
