"""
Free printing for department members.

With ``freeGroups: auto`` every printer tagged "Department:ICS" lets members
of "CITES-PaperCut-FreePrinting-ICS" print for free (the group name comes
from ``freeGroupTemplate``). An explicit list of group names works the same
way for every printer.

Choosing a shared account opts out of free printing for that job: if an
earlier pass zeroed the cost, the printer's normal cost is put back.
"""

from decimal import Decimal

from printpolicy.rules.base import BillingState, Rule, RuleContext, RuleOutcome, format_cost
from printpolicy.schema import AUTO, DEPARTMENT_PREFIX, RuleConfig


def resolve_free_groups(ctx: RuleContext) -> list[str]:
    """The free printing groups that apply on this printer."""
    free_groups = ctx.config.free_groups
    if free_groups != AUTO:
        return list(free_groups or [])

    template = ctx.config.free_group_template
    return [
        template.replace("%department%", department)
        for department in ctx.inputs.printer.groups_with_prefix(DEPARTMENT_PREFIX)
    ]


class FreeGroupRule(Rule):
    """Zero the cost for free printing group members."""

    @property
    def name(self) -> str:
        return "free_groups"

    def enabled(self, config: RuleConfig) -> bool:
        return bool(config.free_groups)

    def evaluate(self, ctx: RuleContext, state: BillingState) -> RuleOutcome:
        if not ctx.inputs.job.is_analysis_complete:
            return self.proceed(state, "analysis incomplete")

        if ctx.inputs.has_shared_account:
            return self._restore_cost(ctx, state)

        if state.cost <= 0:
            return self.proceed(state, "job already free")

        for group in resolve_free_groups(ctx):
            if ctx.inputs.user.is_in_group(group):
                ctx.actions.set_cost(Decimal("0"))
                ctx.actions.add_comment(
                    f"Original cost {format_cost(state.cost)}; free group {group}"
                )
                ctx.debug(f"free printing via {group}")
                return self.proceed(state.with_cost(Decimal("0")), f"free via {group}")

        return self.proceed(state, "not in a free group")

    def _restore_cost(self, ctx: RuleContext, state: BillingState) -> RuleOutcome:
        if state.cost != 0:
            return self.proceed(state, "shared account selected")

        standard = ctx.actions.calculate_standard_cost()
        if standard <= 0:
            return self.proceed(state, "shared account selected; job is free")

        ctx.actions.set_cost(standard)
        ctx.debug(
            f"shared account {ctx.inputs.job.selected_shared_account_name} selected; "
            f"restored cost {format_cost(standard)}"
        )
        return self.proceed(state.with_cost(standard), "restored standard cost")
