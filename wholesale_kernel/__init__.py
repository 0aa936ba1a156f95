"""
Wholesale Kernel

Self-validating business value objects and the shared entity machinery for
a wholesale distribution business:
- Line and transaction financials with tolerance-checked derived amounts
- Write-once identity and audit stamping for aggregates
- Declarative state machines
- Structured logging and a typed exception hierarchy
"""

__version__ = "0.1.0"
