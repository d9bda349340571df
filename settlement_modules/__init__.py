"""
Settlement Modules.

Thin orchestration layers over the Settlement Kernel and Engines.
Each module contains:
- Domain models (frozen dataclasses)
- ORM models (SQLAlchemy persistence)
- Workflows (state machines)
- Configuration schemas
- A service facade that owns the transaction boundary

Modules:
- Verification: three-way verification, batch verification, reversal and
  auto-verification over payables, payment orders and invoices
- Invoices: intake, authenticity check, business verification, deletion
- Payments: payment requests, approval and payment execution
- Statements: purchase orders and records, supplier statements, payable
  generation
"""
