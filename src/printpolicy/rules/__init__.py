"""
Rules for printpolicy.

Each rule encodes one site policy and can be tested on its own:

    no_client_account      NoClientAccountRule
    free_groups            FreeGroupRule
    discount_groups        GroupDiscountRule
    site_restrict_users    SiteRestrictRule
    check_account_printer_group
                           AccountPrinterGroupRule
    external_account       ExternalAccountRule
    billing_account        BillingAccountRule
    commit_personal_accounts
                           CommitAccountsRule
    check_balance          BalanceCheckRule
    notify_printed         NotifyPrintedRule

The order rules run in is fixed by printpolicy.engine.
"""

from printpolicy.rules.account_printer_group import AccountPrinterGroupRule
from printpolicy.rules.balance_check import BalanceCheckRule
from printpolicy.rules.base import BillingState, Rule, RuleContext, RuleOutcome, format_cost
from printpolicy.rules.billing_account import BillingAccountRule
from printpolicy.rules.discount import GroupDiscountRule
from printpolicy.rules.external_account import ExternalAccountRule
from printpolicy.rules.free_groups import FreeGroupRule
from printpolicy.rules.no_client_account import NoClientAccountRule
from printpolicy.rules.notify_printed import NotifyPrintedRule
from printpolicy.rules.personal_accounts import CommitAccountsRule, build_personal_accounts
from printpolicy.rules.site_restrict import SiteRestrictRule

__all__ = [
    "AccountPrinterGroupRule",
    "BalanceCheckRule",
    "BillingAccountRule",
    "BillingState",
    "CommitAccountsRule",
    "ExternalAccountRule",
    "FreeGroupRule",
    "GroupDiscountRule",
    "NoClientAccountRule",
    "NotifyPrintedRule",
    "Rule",
    "RuleContext",
    "RuleOutcome",
    "SiteRestrictRule",
    "build_personal_accounts",
    "format_cost",
]
