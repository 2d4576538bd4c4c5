"""
Schema definitions for printpolicy.

This module defines the Pydantic models used throughout printpolicy:
- RuleConfig and its nested option groups: what each rule is allowed to do
- JobSnapshot/PrinterContext/ClientContext: the read-only view of a print
  job event handed over by the host

Design Decisions:
    - Option fields are addressed by their camelCase names (the names site
      administrators write in their hook scripts); snake_case also works when
      constructing models directly from Python
    - Every option group may be disabled by setting it to false
    - Unknown options are rejected so typos surface at load time
    - Resolved models are immutable (frozen=True)
"""

import re
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Constants
# =============================================================================

PERSONAL_ACCOUNT = "[personal]"
AUTO = "auto"

EXTERNAL_ACCOUNT = "External"
BANNER_ACCOUNT = "Banner"
DEFAULT_ACCOUNT = "Default"

DEPARTMENT_PREFIX = "Department:"
BILLING_PREFIX = "Billing:"


# =============================================================================
# Rule Option Models
# =============================================================================


class SiteRestrictConfig(BaseModel):
    """
    Options for restricting some users to printers at their own site.

    Attributes:
        restrict_group_name: Users in this group are site restricted
        printer_name_regexp: Pattern whose first capture group is the site
        group_name_template: Site group name; "%site%" is replaced with the
            uppercased site token
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    restrict_group_name: str = Field(
        default="CITES-PaperCut-SiteUsers",
        alias="restrictGroupName",
        description="Group whose members are restricted to a site",
    )
    printer_name_regexp: str = Field(
        default=r"^([a-z0-9]+)[_-]",
        alias="printerNameRegexp",
        description="Regular expression capturing the site from the printer name",
    )
    group_name_template: str = Field(
        default="CITES-PaperCut-SiteUsers-%site%",
        alias="groupNameTemplate",
        description="Template for the site group name",
    )

    @field_validator("printer_name_regexp")
    @classmethod
    def validate_regexp(cls, v: str) -> str:
        """The pattern must compile and capture at least one group."""
        try:
            compiled = re.compile(v, re.IGNORECASE)
        except re.error as e:
            msg = f"Invalid printerNameRegexp {v!r}: {e}"
            raise ValueError(msg) from e
        if compiled.groups < 1:
            msg = f"printerNameRegexp {v!r} must capture the site as group 1"
            raise ValueError(msg)
        return v

    @property
    def compiled_regexp(self) -> re.Pattern[str]:
        """The printer name pattern, matched case-insensitively."""
        return re.compile(self.printer_name_regexp, re.IGNORECASE)


class ExternalAccountConfig(BaseModel):
    """
    Options for the externally billed personal account.

    The external account is only offered on printers in one of
    ``printer_groups`` and to users in every one of ``enable_user_groups``.
    Entitled users may be asked whether to pay now (external) or be billed
    later, and may have that answer remembered for a number of days.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    account_name: str = Field(default=EXTERNAL_ACCOUNT, alias="accountName")
    printer_groups: list[str] = Field(
        default_factory=lambda: ["Account:External"],
        alias="printerGroups",
        description="Printer groups where external billing is offered",
    )
    enable_user_groups: list[str] = Field(
        default_factory=lambda: ["CITES-PaperCut-ExternalAccountUsers"],
        alias="enableUserGroups",
        description="User must be in all of these groups",
    )
    prompt: bool = Field(default=True, description="Ask the user interactively")
    always_prompt: bool = Field(
        default=False,
        alias="alwaysPrompt",
        description="Ask even when a remembered choice exists",
    )
    default_enabled: bool = Field(
        default=True,
        alias="defaultEnabled",
        description="Whether external billing applies when no choice exists",
    )
    property_name: str = Field(
        default="external-account-choice",
        alias="propertyName",
        description="User property holding the remembered choice",
    )
    remember_days: list[int] = Field(
        default_factory=lambda: [0, 1, 7, 30],
        alias="rememberDays",
        description="Remember-duration options offered in the prompt",
    )
    gate_at_submission: bool = Field(
        default=False,
        alias="gateAtSubmission",
        description="Also run the gate in the pre-selection pipeline",
    )
    check_balance: bool = Field(
        default=True,
        alias="checkBalance",
        description="Warn when balances cannot cover the job",
    )
    balance_provider: str = Field(
        default="External",
        alias="balanceProvider",
        description="Name of the external balance source",
    )
    top_up_url: str = Field(
        default="https://www.illinois.edu/cfm/billing",
        alias="topUpUrl",
        description="Where users can add funds",
    )

    @field_validator("remember_days")
    @classmethod
    def validate_remember_days(cls, v: list[int]) -> list[int]:
        """Remember durations cannot be negative."""
        for days in v:
            if days < 0:
                msg = f"rememberDays entries must be >= 0, got {days}"
                raise ValueError(msg)
        return v


class PersonalAccountsConfig(BaseModel):
    """
    How the personal account priority list is seeded.

    Attributes:
        names: Accounts placed first, in order
        add_defaults: Append External/Banner/Default from printer billing tags
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    names: list[str] = Field(default_factory=list)
    add_defaults: bool = Field(default=True, alias="addDefaults")


class RuleConfig(BaseModel):
    """
    Complete rule configuration for one hook invocation.

    Build it with ``printpolicy.config.resolve_options`` so caller overrides
    are deep-merged onto these defaults.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    discount_groups: dict[str, Any] | Literal[False] = Field(
        default=False,
        alias="discountGroups",
        description="Group name -> {bw, color} per-page rates",
    )
    free_groups: list[str] | Literal["auto", False] = Field(
        default=AUTO,
        alias="freeGroups",
        description="Free printing groups, or 'auto' to derive from departments",
    )
    free_group_template: str = Field(
        default="CITES-PaperCut-FreePrinting-%department%",
        alias="freeGroupTemplate",
        description="Group name template used when freeGroups is 'auto'",
    )
    notify_printed: bool = Field(default=False, alias="notifyPrinted")
    no_client_account: str | Literal[False] = Field(
        default=PERSONAL_ACCOUNT,
        alias="noClientAccount",
        description="Account charged when no client is running",
    )
    check_account_printer_group: bool = Field(
        default=True,
        alias="checkAccountPrinterGroup",
    )
    site_restrict_users: SiteRestrictConfig | Literal[False] = Field(
        default_factory=SiteRestrictConfig,
        alias="siteRestrictUsers",
    )
    external_account: ExternalAccountConfig | Literal[False] = Field(
        default_factory=ExternalAccountConfig,
        alias="externalAccount",
    )
    personal_accounts: PersonalAccountsConfig = Field(
        default_factory=PersonalAccountsConfig,
        alias="personalAccounts",
    )


# =============================================================================
# Host Snapshot Models
# =============================================================================


class JobSnapshot(BaseModel):
    """
    Read-only view of the print job at the time the hook fires.

    Costs are Decimals; the host owns the job and all changes go through
    HostActions.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    cost: Decimal = Field(default=Decimal("0"))
    total_color_pages: int = Field(default=0, ge=0)
    total_grayscale_pages: int = Field(default=0, ge=0)
    is_analysis_complete: bool = True
    is_web_print_job: bool = False
    selected_shared_account_name: str = ""
    printer_name: str = Field(..., min_length=1)
    full_printer_name: str = ""
    document_name: str = ""
    username: str = Field(..., min_length=1)
    client_ip: str = ""

    @property
    def printer_label(self) -> str:
        """Printer name used in log lines."""
        return self.full_printer_name or self.printer_name


class PrinterContext(BaseModel):
    """A printer and its group tags, such as "Department:ICS"."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    groups: list[str] = Field(default_factory=list)

    def is_in_group(self, group: str) -> bool:
        """Group names compare case-insensitively."""
        wanted = group.casefold()
        return any(g.casefold() == wanted for g in self.groups)

    def groups_with_prefix(self, prefix: str) -> list[str]:
        """
        Return the suffixes of every group tag starting with ``prefix``.

        Example:
            groups ["Department:ICS", "Billing:Banner"] with prefix
            "department:" -> ["ICS"]
        """
        folded = prefix.casefold()
        return [
            g[len(prefix):]
            for g in self.groups
            if g.casefold().startswith(folded) and len(g) > len(prefix)
        ]


class ClientContext(BaseModel):
    """State of the user's client session."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    is_running: bool = False
