"""
Seeding the personal account priority list.

The list starts with ``personalAccounts.names`` in the order given. With
``addDefaults`` on, the printer's "Billing:<Account>" tags are appended in
printer group order; a printer with no billing tag gets External (when the
user is entitled to it) followed by Default. The External account is only
ever listed for entitled users on external billing printers.
"""

from printpolicy.host import JobInputs
from printpolicy.rules.base import BillingState, Rule, RuleContext, RuleOutcome
from printpolicy.schema import BILLING_PREFIX, DEFAULT_ACCOUNT, EXTERNAL_ACCOUNT, RuleConfig


def external_account_name(config: RuleConfig) -> str:
    if config.external_account is False:
        return EXTERNAL_ACCOUNT
    return config.external_account.account_name


def is_external_printer(inputs: JobInputs, config: RuleConfig) -> bool:
    """Whether the printer is in one of the external billing printer groups."""
    options = config.external_account
    if options is False:
        return False
    return any(inputs.printer.is_in_group(g) for g in options.printer_groups)


def is_external_user(inputs: JobInputs, config: RuleConfig) -> bool:
    """Whether the user is in every group required for external billing."""
    options = config.external_account
    if options is False:
        return False
    return all(inputs.user.is_in_group(g) for g in options.enable_user_groups)


def build_personal_accounts(inputs: JobInputs, config: RuleConfig) -> tuple[str, ...]:
    """Return the initial personal account priority list for this job."""
    external = external_account_name(config)
    entitled = is_external_printer(inputs, config) and is_external_user(inputs, config)

    accounts: list[str] = []

    def add(name: str) -> None:
        if name == external and not entitled:
            return
        if name not in accounts:
            accounts.append(name)

    for name in config.personal_accounts.names:
        add(name)

    if config.personal_accounts.add_defaults:
        billing = inputs.printer.groups_with_prefix(BILLING_PREFIX)
        for name in billing or [external, DEFAULT_ACCOUNT]:
            add(name)

    return tuple(accounts)


class CommitAccountsRule(Rule):
    """Hand the priority list to the host, unless it is empty."""

    @property
    def name(self) -> str:
        return "commit_personal_accounts"

    def evaluate(self, ctx: RuleContext, state: BillingState) -> RuleOutcome:
        if not state.accounts:
            return self.proceed(state, "no personal accounts")

        ctx.actions.change_personal_account_charge_priority(list(state.accounts))
        ctx.debug(f"personal account priority {', '.join(state.accounts)}")
        return self.proceed(state, "priority committed")
