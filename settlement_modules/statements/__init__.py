"""
Statements Module (``settlement_modules.statements``).

Responsibility
--------------
Purchase orders, purchase records and supplier statement reconciliation.
Buyer confirmation of a statement generates its accounts payable and
settles prepaid payments against it.

Architecture position
---------------------
**Modules layer** -- models, ORM, config, workflows and the
``StatementService`` facade.
"""

from settlement_modules.statements.models import (
    PurchaseLine,
    PurchaseOrder,
    PurchaseOrderType,
    PurchaseRecord,
    PurchaseRecordStatus,
    PurchaseRecordType,
    StatementSettlement,
    StatementStatus,
    SupplierStatement,
)
from settlement_modules.statements.workflows import PURCHASE_RECORD_WORKFLOW, STATEMENT_WORKFLOW
from settlement_modules.statements.config import StatementConfig

__all__ = [
    "PurchaseLine",
    "PurchaseOrder",
    "PurchaseOrderType",
    "PurchaseRecord",
    "PurchaseRecordStatus",
    "PurchaseRecordType",
    "StatementSettlement",
    "StatementStatus",
    "SupplierStatement",
    "PURCHASE_RECORD_WORKFLOW",
    "STATEMENT_WORKFLOW",
    "StatementConfig",
]
