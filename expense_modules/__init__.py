"""
Expense Modules.

Editing logic over the Expense Kernel. Each module contains:
- Domain models (the nouns)
- Category rules and configuration schemas
- Pure editing functions
- A service facade over collaborator protocols

Modules:
- Report: Expense reports, line items, mileage, per diem, attachments,
  settings
"""

from expense_modules import report

__all__ = [
    "report",
]
