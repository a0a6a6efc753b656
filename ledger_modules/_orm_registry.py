"""
Module ORM Registry (``ledger_modules._orm_registry``).

Responsibility
--------------
Ensure every module-level SQLAlchemy model is imported so that
``Base.metadata`` holds its table definition before ``create_tables()``
runs.  Kernel models are registered first because module tables reference
journal entries.

Usage
-----
``ledger_kernel.db.engine.create_tables()`` and ``tests/conftest.py`` call
``import_all_orm_models()``; repeated calls are harmless.
"""


def import_all_orm_models() -> None:
    import ledger_kernel.models  # noqa: F401
    # fmt: off
    import ledger_modules.parties.orm  # noqa: F401
    import ledger_modules.cash.orm  # noqa: F401
    import ledger_modules.ar.orm  # noqa: F401
    import ledger_modules.ap.orm  # noqa: F401
    import ledger_modules.payroll.orm  # noqa: F401
    import ledger_modules.expense.orm  # noqa: F401
    import ledger_modules.assets.orm  # noqa: F401
    # fmt: on
