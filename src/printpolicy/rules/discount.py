"""
Group rate discounts.

Options look like::

    discountGroups:
      CITES-ICS-Staff: {bw: 0.05, color: 0.20}
      Grad-Students:   {bw: 0.03, color: 0.25}

Discounts don't stack. The cheapest applicable rate wins, and the job's
current cost (the printer's own rate) always stays in the running.
"""

from decimal import Decimal
from numbers import Real
from typing import Any

from printpolicy.rules.base import BillingState, Rule, RuleContext, RuleOutcome, format_cost
from printpolicy.schema import RuleConfig


def _as_rate(value: Any) -> Decimal | None:
    """Convert a configured rate to Decimal, or None if it isn't a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, Real):
        return Decimal(str(value))
    return None


class GroupDiscountRule(Rule):
    """Apply the single cheapest discount rate among the user's groups."""

    @property
    def name(self) -> str:
        return "discount_groups"

    def enabled(self, config: RuleConfig) -> bool:
        return bool(config.discount_groups)

    def evaluate(self, ctx: RuleContext, state: BillingState) -> RuleOutcome:
        job = ctx.inputs.job
        if not job.is_analysis_complete:
            return self.proceed(state, "analysis incomplete")

        original = state.cost
        best = original
        best_group: str | None = None

        for group, rates in ctx.config.discount_groups.items():
            if not ctx.inputs.user.is_in_group(group):
                continue

            if not isinstance(rates, dict):
                ctx.debug(f"{group} - rates must be a mapping of bw/color")
                continue
            bw = _as_rate(rates.get("bw"))
            if bw is None:
                ctx.debug(f"{group} - groupRate.bw is not a number")
                continue
            color = _as_rate(rates.get("color"))
            if color is None:
                ctx.debug(f"{group} - groupRate.color is not a number")
                continue

            candidate = job.total_grayscale_pages * bw + job.total_color_pages * color
            # Job costs can't be negative
            if Decimal(0) <= candidate < best:
                best = candidate
                best_group = group

        if best_group is None:
            return self.proceed(state, "no cheaper group rate")

        ctx.actions.set_cost(best)
        ctx.actions.add_comment(
            f"Original cost {format_cost(original)}; discount group {best_group}"
        )
        ctx.debug(f"discount {best_group}: {format_cost(original)} -> {format_cost(best)}")
        return self.proceed(state.with_cost(best), f"discounted by {best_group}")
