"""
Site restricted users.

Members of ``restrictGroupName`` may only print at sites whose group they
are also in. The site comes from the printer name: with the default pattern
the printer "ug-250-color" is at site "UG", so the user must be in
"CITES-PaperCut-SiteUsers-UG".

Printers whose names don't match the pattern are not restricted.
"""

from printpolicy.rules.base import BillingState, Rule, RuleContext, RuleOutcome
from printpolicy.schema import RuleConfig


class SiteRestrictRule(Rule):
    """Cancel jobs from site restricted users printing outside their site."""

    @property
    def name(self) -> str:
        return "site_restrict_users"

    def enabled(self, config: RuleConfig) -> bool:
        return config.site_restrict_users is not False

    def evaluate(self, ctx: RuleContext, state: BillingState) -> RuleOutcome:
        options = ctx.config.site_restrict_users
        user = ctx.inputs.user

        if not user.is_in_group(options.restrict_group_name):
            return self.proceed(state, "user not site restricted")

        printer_name = ctx.inputs.printer.name
        match = options.compiled_regexp.search(printer_name)
        if not match or not match.group(1):
            ctx.debug(f"no site in printer name {printer_name}")
            return self.proceed(state, "printer has no site")

        site_group = options.group_name_template.replace("%site%", match.group(1).upper())
        if user.is_in_group(site_group):
            return self.proceed(state, f"user in {site_group}")

        reason = f"Site restricted user is not in group {site_group}"
        ctx.actions.cancel_and_log(reason)
        if ctx.inputs.is_client_running:
            ctx.notify(
                ctx.actions.send_message,
                "PRINTING DENIED\n\n"
                f'You do not have permission to print on "{printer_name}".'
            )
        return self.halt(state, reason)
