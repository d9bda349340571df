"""
Module ORM Registry (``settlement_modules._orm_registry``).

Ensures every module-level SQLAlchemy ORM model is imported so that
``Base.metadata`` contains all table definitions before tables are created.
"""


def import_all_orm_models() -> None:
    """Import the kernel counter table and every ``settlement_modules.*.orm`` module.

    Idempotent -- repeated calls are harmless.
    """
    import settlement_kernel.services.sequence_service  # noqa: F401
    import settlement_modules.verification.orm  # noqa: F401
    import settlement_modules.invoices.orm  # noqa: F401
    import settlement_modules.payments.orm  # noqa: F401
    import settlement_modules.statements.orm  # noqa: F401
