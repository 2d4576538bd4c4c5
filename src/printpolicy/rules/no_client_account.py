"""
Pick an account for users who can't be asked.

Sites that make users choose an account in the client still need jobs from
machines without the client (or from web print) to land somewhere. When no
interactive session exists and no shared account was chosen, charge the
configured account.
"""

from printpolicy.rules.base import BillingState, Rule, RuleContext, RuleOutcome
from printpolicy.schema import PERSONAL_ACCOUNT, RuleConfig


class NoClientAccountRule(Rule):
    """Charge ``noClientAccount`` when there's no interactive session."""

    @property
    def name(self) -> str:
        return "no_client_account"

    def enabled(self, config: RuleConfig) -> bool:
        return config.no_client_account is not False

    def evaluate(self, ctx: RuleContext, state: BillingState) -> RuleOutcome:
        if ctx.inputs.has_shared_account or ctx.inputs.is_client_running:
            return self.proceed(state)

        account = ctx.config.no_client_account
        if account in ("", PERSONAL_ACCOUNT):
            ctx.actions.charge_to_personal_account()
            ctx.debug("no client; charging personal account")
            return self.proceed(state, "charged personal account")

        ctx.actions.charge_to_shared_account(account)
        ctx.debug(f"no client; charging shared account {account}")
        return self.proceed(state, f"charged shared account {account}")
