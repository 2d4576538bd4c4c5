"""
External account gate.

On external billing printers, entitled users may pay now through the
External account or be billed later through their other personal accounts.
The answer can be asked for interactively and remembered for a number of
days in a user property (see printpolicy.choice).

Decision order:
    1. Not an external printer, or a shared account was chosen: no-op
    2. User not in every enableUserGroups group: External stays unlisted
    3. Load the remembered choice (bad or expired counts as none)
    4. Prompt if there's no choice (or alwaysPrompt) and a client is running
    5. Drop External from the list if the choice (or default) says so
"""

from typing import Any

from printpolicy.choice import ChoiceToken
from printpolicy.host import CANCEL, TIMEOUT
from printpolicy.rules.base import BillingState, Rule, RuleContext, RuleOutcome
from printpolicy.rules.personal_accounts import is_external_printer, is_external_user
from printpolicy.schema import ExternalAccountConfig, RuleConfig

CHOICE_NOW = "now"
CHOICE_LATER = "later"

FIELD_CHOICE = "choice"
FIELD_REMEMBER = "remember"


class ExternalAccountRule(Rule):
    """Keep or drop the External account from the priority list."""

    def __init__(self, at_submission: bool = False) -> None:
        self.at_submission = at_submission

    @property
    def name(self) -> str:
        return "external_account"

    def enabled(self, config: RuleConfig) -> bool:
        if config.external_account is False:
            return False
        if self.at_submission:
            return config.external_account.gate_at_submission
        return True

    def evaluate(self, ctx: RuleContext, state: BillingState) -> RuleOutcome:
        options = ctx.config.external_account
        account = options.account_name

        if ctx.inputs.has_shared_account:
            return self.proceed(state, "shared account selected")
        if not is_external_printer(ctx.inputs, ctx.config):
            return self.proceed(state, "not an external billing printer")
        if not is_external_user(ctx.inputs, ctx.config):
            return self.proceed(state.without_account(account), "user not entitled")
        if not state.has_account(account):
            return self.proceed(state, f"{account} not offered")

        now_ms = ctx.clock()
        raw = ctx.inputs.user.get_property(options.property_name)
        choice = ChoiceToken.load(raw, now_ms)
        if raw and choice is None:
            ctx.debug(f"ignoring stale or invalid choice {raw!r}")

        if (
            options.prompt
            and (choice is None or options.always_prompt)
            and ctx.inputs.is_client_running
        ):
            choice = self._ask(ctx, options, now_ms) or choice

        enabled = choice.value if choice is not None else options.default_enabled
        if enabled:
            return self.proceed(state, f"{account} kept")

        ctx.debug(f"{account} removed from personal accounts")
        return self.proceed(state.without_account(account), f"{account} removed")

    def _ask(
        self,
        ctx: RuleContext,
        options: ExternalAccountConfig,
        now_ms: int,
    ) -> ChoiceToken | None:
        """Prompt the user; returns None when there's no usable answer."""
        response = ctx.actions.prompt_for_form(
            _prompt_html(ctx.inputs.job.printer_name),
            _prompt_options(options),
        )
        if response in (TIMEOUT, CANCEL) or not isinstance(response, dict):
            ctx.debug(f"external account prompt answered {response!r}")
            return None

        selected = str(response.get(FIELD_CHOICE, "")).strip().lower()
        if selected not in (CHOICE_NOW, CHOICE_LATER):
            ctx.debug(f"external account prompt returned unknown choice {selected!r}")
            return None

        days = _parse_days(response.get(FIELD_REMEMBER))
        token = ChoiceToken.remember(selected == CHOICE_NOW, days, now_ms)

        if days > 0 or options.always_prompt:
            ctx.actions.set_property_on_completion(
                options.property_name,
                token.serialize(),
                persist_if_canceled=True,
            )
            ctx.debug(f"remembering external account choice {token} for {days} days")
        return token


def _parse_days(value: Any) -> int:
    try:
        days = int(str(value).strip())
    except (TypeError, ValueError):
        return 0
    return max(days, 0)


def _prompt_html(printer_name: str) -> str:
    return (
        "<html>Jobs on <strong>" + printer_name + "</strong> can be paid now from "
        "your external account, or billed later.<br><br>"
        "How would you like to pay?</html>"
    )


def _prompt_options(options: ExternalAccountConfig) -> dict[str, Any]:
    return {
        "title": "Choose how to pay",
        "fields": {
            FIELD_CHOICE: [CHOICE_NOW, CHOICE_LATER],
            FIELD_REMEMBER: [str(d) for d in options.remember_days],
        },
        "defaults": {
            FIELD_CHOICE: CHOICE_NOW if options.default_enabled else CHOICE_LATER,
            FIELD_REMEMBER: str(options.remember_days[0]) if options.remember_days else "0",
        },
    }
