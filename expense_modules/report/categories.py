"""
Category Rules (``expense_modules.report.categories``).

Responsibility
--------------
Maps each ``ExpenseCategory`` to its payload shape, default payload and
default cost code. Payload shape and cost derivation are intrinsic to the
category and resolved by exhaustive dispatch; cost codes come from
configuration.

Invariants enforced
-------------------
* Every category has exactly one payload shape. The dispatch chains end
  in ``assert_never`` so a type checker rejects an unhandled category.
* ``default_payload(c).tag is c`` for every category.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import assert_never

from expense_config.schema import CategoryRuleDef
from expense_kernel.exceptions import ConfigurationError
from expense_modules.report.models import (
    CategoryPayload,
    DescriptionPayload,
    ExpenseCategory,
    MileagePayload,
    PayloadShape,
    PerDiemPayload,
)


def payload_shape(category: ExpenseCategory) -> PayloadShape:
    """Payload shape contributed by ``category``."""
    if category is ExpenseCategory.MILEAGE_TRIP:
        return PayloadShape.MILEAGE
    elif category is ExpenseCategory.PER_DIEM:
        return PayloadShape.PER_DIEM
    elif (
        category is ExpenseCategory.REIMBURSABLE_RECEIPT
        or category is ExpenseCategory.CLIENT_ENTERTAINMENT
        or category is ExpenseCategory.JOB_SITE_MATERIAL
        or category is ExpenseCategory.OTHER
    ):
        return PayloadShape.DESCRIPTION
    else:
        assert_never(category)


def default_payload(category: ExpenseCategory) -> CategoryPayload:
    """Fresh payload for a line item that just switched to ``category``."""
    shape = payload_shape(category)
    if shape is PayloadShape.MILEAGE:
        return MileagePayload()
    elif shape is PayloadShape.PER_DIEM:
        return PerDiemPayload()
    elif shape is PayloadShape.DESCRIPTION:
        return DescriptionPayload(tag=category)
    else:
        assert_never(shape)


def derives_cost(category: ExpenseCategory | None) -> bool:
    """True when cost is computed from settings rather than typed."""
    if category is None:
        return False
    return payload_shape(category) is not PayloadShape.DESCRIPTION


@dataclass(frozen=True)
class CategoryRule:
    """One row of the category table."""
    category: ExpenseCategory
    default_cost_code: str = ""

    @property
    def shape(self) -> PayloadShape:
        return payload_shape(self.category)

    @property
    def has_fixed_cost_code(self) -> bool:
        return bool(self.default_cost_code)

    @property
    def derives_cost(self) -> bool:
        return derives_cost(self.category)


class CategoryRules:
    """
    Lookup table of ``CategoryRule`` by category.

    Categories missing from the configuration get a rule with no default
    cost code, so the table always covers the whole enumeration.
    """

    def __init__(self, rules: Iterable[CategoryRule] = ()):
        by_category = {rule.category: rule for rule in rules}
        self._rules: dict[ExpenseCategory, CategoryRule] = {
            category: by_category.get(category, CategoryRule(category))
            for category in ExpenseCategory
        }

    @classmethod
    def from_definitions(cls, defs: Iterable[CategoryRuleDef]) -> CategoryRules:
        """Build the table from parsed configuration."""
        rules = []
        for d in defs:
            try:
                category = ExpenseCategory(d.category)
            except ValueError as exc:
                raise ConfigurationError(
                    "categories", f"unknown category '{d.category}'"
                ) from exc
            rules.append(CategoryRule(category, d.default_cost_code))
        return cls(rules)

    def __getitem__(self, category: ExpenseCategory) -> CategoryRule:
        return self._rules[category]

    def __iter__(self) -> Iterator[CategoryRule]:
        return iter(self._rules.values())

    def default_cost_code(self, category: ExpenseCategory) -> str:
        return self._rules[category].default_cost_code
