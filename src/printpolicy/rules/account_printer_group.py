"""
Shared accounts limited to printer groups.

A shared account named "[Department:ICS] CITES-ICS Staff Credit" may only be
used on printers in the "Department:ICS" group. Accounts without a bracketed
prefix are unrestricted.
"""

import re

from printpolicy.rules.base import BillingState, Rule, RuleContext, RuleOutcome
from printpolicy.schema import RuleConfig

ACCOUNT_GROUP_RE = re.compile(r"^\[([^\\\]]+)\]")


def account_printer_group(account_name: str) -> str | None:
    """Return the printer group an account is limited to, if any."""
    match = ACCOUNT_GROUP_RE.match(account_name)
    return match.group(1) if match else None


class AccountPrinterGroupRule(Rule):
    """Cancel jobs charged to a shared account outside its printer group."""

    @property
    def name(self) -> str:
        return "check_account_printer_group"

    def enabled(self, config: RuleConfig) -> bool:
        return config.check_account_printer_group

    def evaluate(self, ctx: RuleContext, state: BillingState) -> RuleOutcome:
        account = ctx.inputs.job.selected_shared_account_name
        if not account:
            ctx.debug("personal account selected")
            return self.proceed(state, "personal account")

        group = account_printer_group(account)
        if group is None:
            ctx.debug(f"account not restricted ({account})")
            return self.proceed(state, "account not restricted")

        if ctx.inputs.printer.is_in_group(group):
            ctx.debug(f"printer is in the account group ({account})")
            return self.proceed(state, f"printer in {group}")

        reason = f'Shared account only for "{group}" printers'
        if not ctx.inputs.is_client_running:
            reason += "; client not running"

        ctx.actions.cancel_and_log(reason)
        if ctx.inputs.is_client_running:
            ctx.notify(
                ctx.actions.prompt_ok,
                f'<html>The shared account <strong>"{account}"</strong> '
                "cannot be used with this printer. You must resubmit the job and either "
                "charge to a different account or charge to your personal account.</html>"
            )
        return self.halt(state, reason)
