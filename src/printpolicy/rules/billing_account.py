"""Cancel paid jobs that have nowhere to be charged."""

from printpolicy.rules.base import BillingState, Rule, RuleContext, RuleOutcome


class BillingAccountRule(Rule):
    """A job with a cost needs a shared account or at least one personal account."""

    @property
    def name(self) -> str:
        return "billing_account"

    def evaluate(self, ctx: RuleContext, state: BillingState) -> RuleOutcome:
        if not ctx.inputs.job.is_analysis_complete or ctx.inputs.has_shared_account:
            return self.proceed(state)
        # Free jobs need no account
        if state.cost <= 0 or state.accounts:
            return self.proceed(state)

        reason = "No personal account available to charge"
        ctx.actions.cancel_and_log(reason)
        if ctx.inputs.is_client_running:
            ctx.notify(
                ctx.actions.send_message,
                "PRINTING DENIED\n\n"
                "You do not have an account that can be charged for printing on "
                f'"{ctx.inputs.printer.name}". Please select a shared account.'
            )
        return self.halt(state, reason)
