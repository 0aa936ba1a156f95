"""
Wholesale Modules.

Aggregates built on the Wholesale Kernel.  Each module contains:
- Domain entities (the nouns and their lifecycle rules)
- Workflows (state machines)
- Configuration schemas
- ORM models and repositories (the persistence boundary)

Modules:
- Purchasing: supplier ledger (invoices, payments, credits)
- Sales: orders with picking workflow, customers with credit hold
"""
