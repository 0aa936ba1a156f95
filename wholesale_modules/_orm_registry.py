"""
Module ORM Registry (``wholesale_modules._orm_registry``).

Ensure all module-level SQLAlchemy ORM models are imported so that
``Base.metadata`` contains their table definitions before
``wholesale_kernel.db.engine.create_tables()`` runs.
"""


def import_all_orm_models() -> None:
    """Import every ``wholesale_modules.*.orm`` module.  Idempotent."""
    import wholesale_modules.purchasing.orm  # noqa: F401
    import wholesale_modules.sales.orm  # noqa: F401
