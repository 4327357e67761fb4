"""
Expense Kernel

Shared primitives for the expense report editing core:
- Structured JSON logging
- Typed, coded exceptions
- Failure and validation result values
"""

__version__ = "0.1.0"
