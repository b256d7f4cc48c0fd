"""
Distribution Kernel

Reconciliation engine for contracted school-supply distribution:
- Contract balance ledger with atomic compare-and-decrement
- All-or-nothing order allocation across school units
- One delivery receipt per unit with a single-use confirmation token
- Receipt confirmation state machine
- Complementary receipt chains for delivery shortfalls
- Order consolidation derived from the receipt forest
"""

__version__ = "0.1.0"
