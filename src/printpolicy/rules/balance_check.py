"""
Advisory balance check for External account users.

When External is the only way a job can be paid (no Banner or Default
account to fall back on), warn the user if their balances can't cover the
job. This never cancels or changes billing; the host decides what happens
when the charge fails.

A balance that can't be looked up counts as zero.
"""

from decimal import Decimal

from printpolicy.rules.base import BillingState, Rule, RuleContext, RuleOutcome, format_cost
from printpolicy.schema import BANNER_ACCOUNT, DEFAULT_ACCOUNT, RuleConfig

FALLBACK_ACCOUNTS = (DEFAULT_ACCOUNT, BANNER_ACCOUNT)


class BalanceCheckRule(Rule):
    """Warn when personal plus external balances are below the job cost."""

    @property
    def name(self) -> str:
        return "check_balance"

    def enabled(self, config: RuleConfig) -> bool:
        return config.external_account is not False and config.external_account.check_balance

    def evaluate(self, ctx: RuleContext, state: BillingState) -> RuleOutcome:
        options = ctx.config.external_account
        inputs = ctx.inputs

        if not inputs.is_client_running or not inputs.job.is_analysis_complete:
            return self.proceed(state)
        if inputs.has_shared_account or not state.has_account(options.account_name):
            return self.proceed(state)
        if any(state.has_account(a) for a in FALLBACK_ACCOUNTS):
            return self.proceed(state, "fallback account available")

        total = Decimal("0")
        for account in state.accounts:
            if account == options.account_name:
                continue
            try:
                total += Decimal(inputs.user.get_balance(account))
            except Exception as e:
                ctx.error(f"balance lookup failed for {account}: {e}")

        try:
            external = ctx.actions.lookup_external_balance(
                options.balance_provider, inputs.job.username
            )
        except Exception as e:
            ctx.error(f"{options.balance_provider} balance lookup failed: {e}")
            external = None
        if external is not None:
            total += Decimal(external)

        if state.cost <= total:
            return self.proceed(state, "balance sufficient")

        shortfall = state.cost - total
        ctx.debug(f"balance {format_cost(total)} short by {format_cost(shortfall)}")
        ctx.actions.prompt_ok(
            "<html>Your available balance of <strong>" + format_cost(total) + "</strong> "
            "is not enough for this job (cost " + format_cost(state.cost) + "). "
            "You need <strong>" + format_cost(shortfall) + "</strong> more.<br><br>"
            'Add funds at <a href="' + options.top_up_url + '">' + options.top_up_url
            + "</a>.</html>"
        )
        return self.proceed(state, f"short by {format_cost(shortfall)}")
