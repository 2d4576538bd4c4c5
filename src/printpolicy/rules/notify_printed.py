"""Tell the user their job is queued."""

from printpolicy.rules.base import BillingState, Rule, RuleContext, RuleOutcome, format_cost
from printpolicy.schema import RuleConfig


class NotifyPrintedRule(Rule):
    """Tell the user the job is queued, with the effective cost."""

    @property
    def name(self) -> str:
        return "notify_printed"

    def enabled(self, config: RuleConfig) -> bool:
        return config.notify_printed

    def evaluate(self, ctx: RuleContext, state: BillingState) -> RuleOutcome:
        job = ctx.inputs.job
        if not ctx.inputs.is_client_running or not job.is_analysis_complete:
            return self.proceed(state)

        ctx.actions.send_message(
            f"The following job is queued for printing on {job.printer_name}: "
            f"{job.document_name} (cost: {format_cost(state.cost)})."
        )
        return self.proceed(state, "user notified")
