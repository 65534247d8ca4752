"""Unit price resolution from a product's pricing rule and selected options.

Pure functions only: no DB, no clock. Callers build the selected groups from
the catalog (see ``services.orders``) and decide what to do with an invalid
result.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from orderdesk.db.models import GroupRole, PricingRule

RULES_REQUIRING_FLAVOR = frozenset({PricingRule.MAX_OPTION, PricingRule.HALF_SUM})


@dataclass(frozen=True)
class SelectedOptionGroup:
    name: str
    role: GroupRole = GroupRole.ADDON
    # deltas of the items the customer actually selected, catalog order
    price_deltas: tuple[int, ...] = field(default_factory=tuple)

    @property
    def is_flavor(self) -> bool:
        return self.role == GroupRole.FLAVOR


@dataclass(frozen=True)
class PricingResult:
    rule: PricingRule
    unit_price_cents: int
    has_flavor_selection: bool
    flavors_count: int
    flavor_contribution_cents: int
    extras_cents: int

    @property
    def requires_flavor_selection(self) -> bool:
        return self.rule in RULES_REQUIRING_FLAVOR

    @property
    def is_valid(self) -> bool:
        return self.has_flavor_selection or not self.requires_flavor_selection


def mean_half_up(values: list[int]) -> int:
    """Integer mean rounded half-up (toward +inf on exact halves)."""
    n = len(values)
    return (2 * sum(values) + n) // (2 * n)


def compute_price(
    rule: PricingRule,
    base_price_cents: int,
    groups: list[SelectedOptionGroup],
) -> PricingResult:
    """
    SUM        base + every selected delta
    MAX_OPTION base + max(flavor deltas) + other groups
    HALF_SUM   base + mean(flavor deltas) + other groups

    Flavor deltas are pooled across FLAVOR groups. MAX_OPTION and HALF_SUM
    without any flavor selection price the flavor part as 0 and come back
    with ``is_valid == False``; nothing is raised here.
    """
    rule = PricingRule(rule)

    flavors: list[int] = []
    extras_cents = 0
    for group in groups:
        if group.is_flavor:
            flavors.extend(group.price_deltas)
        else:
            extras_cents += sum(group.price_deltas)

    if rule == PricingRule.SUM:
        flavor_contribution = sum(flavors)
    elif not flavors:
        flavor_contribution = 0
    elif rule == PricingRule.MAX_OPTION:
        flavor_contribution = max(flavors)
    else:
        flavor_contribution = mean_half_up(flavors)

    return PricingResult(
        rule=rule,
        unit_price_cents=base_price_cents + flavor_contribution + extras_cents,
        has_flavor_selection=bool(flavors),
        flavors_count=len(flavors),
        flavor_contribution_cents=flavor_contribution,
        extras_cents=extras_cents,
    )
