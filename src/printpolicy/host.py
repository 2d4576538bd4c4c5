"""
The host print server, as seen by the rules.

printpolicy never talks to the print server directly. The host hands over a
JobInputs bundle (read-only state) and a HostActions implementation (every
side effect the rules may cause). This module defines both interfaces plus
RecordingHost, an in-memory host that records actions in order. RecordingHost
backs the `printpolicy simulate` command and the test suite.

Design Principles:
    - Inputs are snapshots; rules never write to them
    - Every side effect is a HostActions call, so it can be recorded
    - Dialog outcomes "TIMEOUT" and "CANCEL" are answers, not errors
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Protocol

import yaml
from pydantic import BaseModel, ConfigDict, Field

from printpolicy.errors import BalanceLookupError, JobCanceledError
from printpolicy.logging_config import get_logger
from printpolicy.schema import ClientContext, JobSnapshot, PrinterContext

logger = get_logger(__name__)

TIMEOUT = "TIMEOUT"
CANCEL = "CANCEL"

FormResponse = dict[str, str]


# =============================================================================
# Interfaces
# =============================================================================


class UserContext(ABC):
    """The submitting user: group membership, balances and stored properties."""

    @property
    @abstractmethod
    def username(self) -> str:
        ...

    @abstractmethod
    def is_in_group(self, group: str) -> bool:
        ...

    @abstractmethod
    def get_balance(self, account_name: str) -> Decimal:
        """
        Return the balance of one of the user's personal accounts.

        May raise; callers treat a failure as a zero balance.
        """
        ...

    @abstractmethod
    def get_property(self, key: str) -> str | None:
        ...


class BalanceService(Protocol):
    """An external balance source, keyed by provider name."""

    def get_balance(self, provider: str, username: str) -> Decimal | None:
        ...


class HostActions(ABC):
    """
    Every side effect a rule can request from the host.

    Implementations forward these to the print server. Calls are made
    synchronously from inside a single hook invocation.
    """

    # Job -----------------------------------------------------------------

    @abstractmethod
    def set_cost(self, cost: Decimal) -> None:
        ...

    @abstractmethod
    def add_comment(self, comment: str) -> None:
        ...

    @abstractmethod
    def cancel_and_log(self, reason: str) -> None:
        ...

    @abstractmethod
    def charge_to_personal_account(self) -> None:
        ...

    @abstractmethod
    def charge_to_shared_account(self, account_name: str) -> None:
        ...

    @abstractmethod
    def change_personal_account_charge_priority(self, accounts: list[str]) -> None:
        ...

    @abstractmethod
    def calculate_standard_cost(self) -> Decimal:
        """The job's cost at the printer's normal rates."""
        ...

    # Client --------------------------------------------------------------

    @abstractmethod
    def prompt_ok(self, html: str) -> str:
        ...

    @abstractmethod
    def prompt_for_form(self, html: str, options: dict[str, Any]) -> FormResponse | str:
        """Show a form; returns field values, or TIMEOUT / CANCEL."""
        ...

    @abstractmethod
    def send_message(self, text: str) -> None:
        ...

    # User ----------------------------------------------------------------

    @abstractmethod
    def set_property_on_completion(
        self,
        key: str,
        value: str,
        persist_if_canceled: bool = False,
    ) -> None:
        ...

    @abstractmethod
    def lookup_external_balance(self, provider: str, username: str) -> Decimal | None:
        ...

    # Log -----------------------------------------------------------------

    @abstractmethod
    def log_debug(self, message: str) -> None:
        ...

    @abstractmethod
    def log_error(self, message: str) -> None:
        ...


@dataclass
class JobInputs:
    """
    Everything the host knows about one print job event.

    Attributes:
        job: Job snapshot (cost, pages, names)
        user: The submitting user
        printer: The target printer and its groups
        client: The user's client session
    """

    job: JobSnapshot
    user: UserContext
    printer: PrinterContext
    client: ClientContext = field(default_factory=ClientContext)

    @property
    def is_client_running(self) -> bool:
        """
        Whether an interactive session is available.

        Web print jobs never have one, even if the user happens to have a
        client open elsewhere.
        """
        return self.client.is_running and not self.job.is_web_print_job

    @property
    def has_shared_account(self) -> bool:
        return bool(self.job.selected_shared_account_name)


# =============================================================================
# In-Memory Host
# =============================================================================


class StaticUser(UserContext):
    """A user whose groups, balances and properties are fixed up front."""

    def __init__(
        self,
        username: str,
        groups: list[str] | None = None,
        balances: dict[str, Decimal] | None = None,
        properties: dict[str, str] | None = None,
    ) -> None:
        self._username = username
        self._groups = {g.casefold() for g in groups or []}
        self.balances = dict(balances or {})
        self.properties = dict(properties or {})

    @property
    def username(self) -> str:
        return self._username

    def is_in_group(self, group: str) -> bool:
        return group.casefold() in self._groups

    def get_balance(self, account_name: str) -> Decimal:
        if account_name not in self.balances:
            raise BalanceLookupError(provider=account_name, username=self._username)
        return Decimal(self.balances[account_name])

    def get_property(self, key: str) -> str | None:
        return self.properties.get(key)


@dataclass(frozen=True)
class RecordedAction:
    """One HostActions call, in the order it was made."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        if not self.args:
            return self.name
        rendered = ", ".join(f"{k}={v!r}" for k, v in self.args.items())
        return f"{self.name}({rendered})"


class RecordingHost(HostActions):
    """
    HostActions that records every call and keeps simple job state.

    Form prompts are answered from ``form_responses`` in order; once they
    run out every prompt times out. Once the job is canceled, any further
    attempt to change billing raises JobCanceledError.

    Usage:
        host = RecordingHost(standard_cost=Decimal("0.40"))
        evaluate_post_selection(inputs, host)
        host.names()  # ["set_cost", "cancel_and_log", ...]
    """

    _MUTATING = frozenset({
        "set_cost",
        "cancel_and_log",
        "charge_to_personal_account",
        "charge_to_shared_account",
        "change_personal_account_charge_priority",
    })

    def __init__(
        self,
        standard_cost: Decimal = Decimal("0"),
        form_responses: list[FormResponse | str] | None = None,
        external_balances: dict[str, Decimal] | None = None,
        balance_service: BalanceService | None = None,
    ) -> None:
        self.standard_cost = Decimal(standard_cost)
        self.form_responses = list(form_responses or [])
        self.external_balances = dict(external_balances or {})
        self.balance_service = balance_service

        self.actions: list[RecordedAction] = []
        self.logs: list[tuple[str, str]] = []
        self.properties: dict[str, tuple[str, bool]] = {}
        self.cost: Decimal | None = None
        self.canceled = False
        self.cancel_reason: str | None = None
        self.charged_account: str | None = None
        self.account_priority: list[str] | None = None

    def _record(self, name: str, **args: Any) -> None:
        if self.canceled and name in self._MUTATING:
            raise JobCanceledError(action=name)
        self.actions.append(RecordedAction(name, args))

    def names(self) -> list[str]:
        """Names of the recorded actions, excluding log lines."""
        return [a.name for a in self.actions]

    def calls(self, name: str) -> list[RecordedAction]:
        return [a for a in self.actions if a.name == name]

    def set_cost(self, cost: Decimal) -> None:
        self._record("set_cost", cost=cost)
        self.cost = cost

    def add_comment(self, comment: str) -> None:
        self._record("add_comment", comment=comment)

    def cancel_and_log(self, reason: str) -> None:
        self._record("cancel_and_log", reason=reason)
        self.canceled = True
        self.cancel_reason = reason

    def charge_to_personal_account(self) -> None:
        self._record("charge_to_personal_account")
        self.charged_account = "[personal]"

    def charge_to_shared_account(self, account_name: str) -> None:
        self._record("charge_to_shared_account", account_name=account_name)
        self.charged_account = account_name

    def change_personal_account_charge_priority(self, accounts: list[str]) -> None:
        self._record("change_personal_account_charge_priority", accounts=list(accounts))
        self.account_priority = list(accounts)

    def calculate_standard_cost(self) -> Decimal:
        return self.standard_cost

    def prompt_ok(self, html: str) -> str:
        self._record("prompt_ok", html=html)
        return "OK"

    def prompt_for_form(self, html: str, options: dict[str, Any]) -> FormResponse | str:
        self._record("prompt_for_form", html=html, options=options)
        if not self.form_responses:
            return TIMEOUT
        return self.form_responses.pop(0)

    def send_message(self, text: str) -> None:
        self._record("send_message", text=text)

    def set_property_on_completion(
        self,
        key: str,
        value: str,
        persist_if_canceled: bool = False,
    ) -> None:
        self._record(
            "set_property_on_completion",
            key=key,
            value=value,
            persist_if_canceled=persist_if_canceled,
        )
        self.properties[key] = (value, persist_if_canceled)

    def lookup_external_balance(self, provider: str, username: str) -> Decimal | None:
        if self.balance_service is not None:
            return self.balance_service.get_balance(provider, username)
        balance = self.external_balances.get(provider)
        return None if balance is None else Decimal(balance)

    def log_debug(self, message: str) -> None:
        self.logs.append(("debug", message))
        logger.debug(message)

    def log_error(self, message: str) -> None:
        self.logs.append(("error", message))
        logger.error(message)

    def summary(self) -> dict[str, Any]:
        """Final job state, for reports."""
        return {
            "canceled": self.canceled,
            "cancel_reason": self.cancel_reason,
            "cost": None if self.cost is None else str(self.cost),
            "charged_account": self.charged_account,
            "account_priority": self.account_priority,
            "properties": {k: v for k, (v, _) in self.properties.items()},
        }


# =============================================================================
# Scenario Files
# =============================================================================


class ScenarioUser(BaseModel):
    """The user section of a scenario file."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    groups: list[str] = Field(default_factory=list)
    balances: dict[str, Decimal] = Field(default_factory=dict)
    properties: dict[str, str] = Field(default_factory=dict)


class Scenario(BaseModel):
    """
    A print job event described in YAML, for offline simulation.

    Example:
        job:
          username: alice
          printer_name: ug-250-color
          cost: 2.50
          total_grayscale_pages: 10
        printer:
          groups: ["Department:ICS"]
        client:
          is_running: true
        user:
          groups: [CITES-PaperCut-FreePrinting-ICS]
        selected_account: "[Department:ICS] Staff Credit"

    ``selected_account`` is the shared account picked at the account
    selection prompt; it is applied to the snapshot of post-selection runs.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    job: JobSnapshot
    printer: dict[str, Any] = Field(default_factory=dict)
    client: ClientContext = Field(default_factory=ClientContext)
    user: ScenarioUser = Field(default_factory=ScenarioUser)
    standard_cost: Decimal | None = None
    external_balances: dict[str, Decimal] = Field(default_factory=dict)
    form_responses: list[dict[str, str] | str] = Field(default_factory=list)
    selected_account: str | None = None

    def build(
        self,
        balance_service: BalanceService | None = None,
        cost: Decimal | None = None,
        after_selection: bool = False,
    ) -> tuple[JobInputs, RecordingHost]:
        """
        Create fresh inputs and a fresh recording host for one run.

        Args:
            balance_service: Remote balance lookup for the host
            cost: Job cost left by an earlier stage, replacing the snapshot's
            after_selection: Apply ``selected_account`` to the snapshot
        """
        updates: dict[str, Any] = {}
        if cost is not None:
            updates["cost"] = cost
        if after_selection and self.selected_account is not None:
            updates["selected_shared_account_name"] = self.selected_account
        job = self.job.model_copy(update=updates) if updates else self.job

        printer = PrinterContext.model_validate(
            {"name": self.job.printer_name, **self.printer}
        )
        user = StaticUser(
            username=self.job.username,
            groups=self.user.groups,
            balances=self.user.balances,
            properties=self.user.properties,
        )
        host = RecordingHost(
            standard_cost=self.standard_cost if self.standard_cost is not None else self.job.cost,
            form_responses=[
                dict(r) if isinstance(r, dict) else r for r in self.form_responses
            ],
            external_balances=self.external_balances,
            balance_service=balance_service,
        )
        inputs = JobInputs(job=job, user=user, printer=printer, client=self.client)
        return inputs, host


def load_scenario(path: Path | str) -> Scenario:
    """
    Load a scenario from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the YAML doesn't match the schema
    """
    path = Path(path)
    with path.open() as f:
        data = yaml.safe_load(f)

    return Scenario.model_validate(data)


def load_scenario_from_string(content: str) -> Scenario:
    """Load a scenario from a YAML string."""
    data = yaml.safe_load(content)
    return Scenario.model_validate(data)
