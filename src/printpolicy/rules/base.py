"""
Base classes for the rule interface.

This module defines the core abstractions shared by every rule:
- BillingState: the accumulator threaded through a pipeline (personal
  account priority list and effective cost)
- RuleOutcome: what a rule decided (proceed or halt, plus the new state)
- RuleContext: inputs, host actions and config for one pipeline run
- Rule: abstract base class that all rules implement

Design Principles:
    - Rules are stateless; everything they need comes from RuleContext
    - Rules never mutate BillingState; they return a new one
    - Rules return RuleOutcome; expected failures are logged, never raised
    - A halt outcome means the job has been fully handled (usually canceled)
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal

from printpolicy.choice import now_millis
from printpolicy.host import HostActions, JobInputs
from printpolicy.logging_config import get_logger
from printpolicy.schema import RuleConfig

logger = get_logger(__name__)

CENT = Decimal("0.01")


def format_cost(cost: Decimal) -> str:
    """Format a cost the way users see it, e.g. ``$1.50``."""
    return f"${Decimal(cost).quantize(CENT, rounding=ROUND_HALF_UP)}"


# =============================================================================
# Accumulator
# =============================================================================


@dataclass(frozen=True)
class BillingState:
    """
    Billing decisions made so far in a pipeline run.

    Attributes:
        accounts: Personal accounts in charge priority order, highest first.
            Empty only when no personal billing is allowed.
        cost: Effective job cost after earlier rules
    """

    accounts: tuple[str, ...] = ()
    cost: Decimal = Decimal("0")

    def has_account(self, name: str) -> bool:
        return name in self.accounts

    def without_account(self, name: str) -> "BillingState":
        return replace(self, accounts=tuple(a for a in self.accounts if a != name))

    def with_account(self, name: str) -> "BillingState":
        """Append ``name`` at lowest priority unless already present."""
        if name in self.accounts:
            return self
        return replace(self, accounts=self.accounts + (name,))

    def with_cost(self, cost: Decimal) -> "BillingState":
        return replace(self, cost=cost)


@dataclass(frozen=True)
class RuleOutcome:
    """
    Result of evaluating one rule.

    Attributes:
        stop: Whether the rest of the pipeline must be skipped
        reason: Human-readable explanation of the decision
        state: Billing state to hand to the next rule
        rule: Name of the rule that produced this outcome
    """

    stop: bool
    reason: str
    state: BillingState
    rule: str | None = None

    @classmethod
    def proceed(
        cls,
        state: BillingState,
        reason: str = "no action",
        rule: str | None = None,
    ) -> "RuleOutcome":
        """Create an outcome that lets the pipeline continue."""
        return cls(stop=False, reason=reason, state=state, rule=rule)

    @classmethod
    def halt(
        cls,
        state: BillingState,
        reason: str,
        rule: str | None = None,
    ) -> "RuleOutcome":
        """Create an outcome that stops the pipeline."""
        return cls(stop=True, reason=reason, state=state, rule=rule)


# =============================================================================
# Context
# =============================================================================


@dataclass
class RuleContext:
    """
    Runtime context passed to rules during a pipeline run.

    Attributes:
        inputs: Read-only job, user, printer and client state
        actions: Host side effects
        config: Resolved options
        clock: Returns the current time in epoch milliseconds
    """

    inputs: JobInputs
    actions: HostActions
    config: RuleConfig
    clock: Callable[[], int] = field(default=now_millis)

    @property
    def log_prefix(self) -> str:
        job = self.inputs.job
        return f"{job.printer_label} {job.username}@{job.client_ip} - "

    def debug(self, message: str) -> None:
        line = self.log_prefix + message
        self.actions.log_debug(line)
        logger.debug(line)

    def error(self, message: str) -> None:
        line = self.log_prefix + message
        self.actions.log_error(line)
        logger.error(line)

    def notify(self, show: Callable[[str], object], text: str) -> None:
        """
        Show ``text`` to the user through ``show`` (send_message or prompt_ok).

        Called after a job is canceled, so a client that cannot be reached
        is logged and the rule still halts.
        """
        try:
            show(text)
        except Exception as e:
            self.error(f"could not notify user: {e}")


# =============================================================================
# Rule
# =============================================================================


class Rule(ABC):
    """
    Abstract base class for all rules.

    Subclasses must implement:
    - name property: Returns the rule's identifier
    - enabled(): Whether the resolved config switches the rule on
    - evaluate(): Applies the policy and returns a RuleOutcome
    """

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    def enabled(self, config: RuleConfig) -> bool:
        return True

    @abstractmethod
    def evaluate(self, ctx: RuleContext, state: BillingState) -> RuleOutcome:
        ...

    def proceed(self, state: BillingState, reason: str = "no action") -> RuleOutcome:
        return RuleOutcome.proceed(state, reason, rule=self.name)

    def halt(self, state: BillingState, reason: str) -> RuleOutcome:
        return RuleOutcome.halt(state, reason, rule=self.name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
