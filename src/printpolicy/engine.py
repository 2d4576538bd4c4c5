"""
Rule Engine for printpolicy.

The engine runs the two hook pipelines. The host calls
``evaluate_pre_selection`` when a job is submitted and
``evaluate_post_selection`` once an account has been chosen; both return
True when the job has been fully handled and the host's own script should
stop.

Execution Flow:
    1. Resolve options onto the defaults
    2. Seed BillingState with the personal account list and the job cost
    3. For each enabled rule, in fixed order:
        a. Evaluate it against the current state
        b. Carry its returned state forward
        c. If it halted: stop (the job is canceled or fully handled)
    4. Return a PipelineResult

Design Principles:
    - Fixed order: rules are toggled and parameterized, never reordered
    - Contained failures: a rule that raises is logged and skipped, except
      that acting on an already canceled job stops the pipeline
    - One commit: the priority list reaches the host in a single call
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from printpolicy.choice import now_millis
from printpolicy.config import resolve_options
from printpolicy.errors import ConfigurationError, JobCanceledError
from printpolicy.host import HostActions, JobInputs
from printpolicy.logging_config import get_logger
from printpolicy.rules import (
    AccountPrinterGroupRule,
    BalanceCheckRule,
    BillingAccountRule,
    BillingState,
    CommitAccountsRule,
    ExternalAccountRule,
    FreeGroupRule,
    GroupDiscountRule,
    NoClientAccountRule,
    NotifyPrintedRule,
    Rule,
    RuleContext,
    RuleOutcome,
    SiteRestrictRule,
    build_personal_accounts,
)
from printpolicy.schema import RuleConfig

logger = get_logger(__name__)

PRE_SELECTION = "pre_selection"
POST_SELECTION = "post_selection"


@dataclass
class PipelineResult:
    """
    Result of running one pipeline.

    Attributes:
        stage: PRE_SELECTION or POST_SELECTION
        stopped: Whether a rule halted the pipeline
        stopped_by: Name of the halting rule
        outcomes: Outcome of every rule that ran, in order
        state: Final billing state
    """

    stage: str
    stopped: bool = False
    stopped_by: str | None = None
    outcomes: list[RuleOutcome] = field(default_factory=list)
    state: BillingState = field(default_factory=BillingState)

    @property
    def rules_run(self) -> list[str]:
        return [o.rule for o in self.outcomes if o.rule]


class RuleEngine:
    """
    Runs the pre- and post-selection pipelines under one configuration.

    Usage:
        engine = RuleEngine(resolve_options({"notifyPrinted": True}))
        result = engine.run_post_selection(inputs, actions)
        if result.stopped:
            # job was canceled
    """

    def __init__(
        self,
        config: RuleConfig | None = None,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self.config = config if config is not None else RuleConfig()
        self.clock = clock

    def pre_selection_rules(self) -> list[Rule]:
        return [
            NoClientAccountRule(),
            ExternalAccountRule(at_submission=True),
            CommitAccountsRule(),
            FreeGroupRule(),
            GroupDiscountRule(),
            SiteRestrictRule(),
            NotifyPrintedRule(),
        ]

    def post_selection_rules(self) -> list[Rule]:
        return [
            NoClientAccountRule(),
            FreeGroupRule(),
            GroupDiscountRule(),
            SiteRestrictRule(),
            AccountPrinterGroupRule(),
            ExternalAccountRule(),
            BillingAccountRule(),
            CommitAccountsRule(),
            BalanceCheckRule(),
            NotifyPrintedRule(),
        ]

    def run_pre_selection(self, inputs: JobInputs, actions: HostActions) -> PipelineResult:
        """Run the job submission pipeline."""
        return self._run(PRE_SELECTION, self.pre_selection_rules(), inputs, actions)

    def run_post_selection(self, inputs: JobInputs, actions: HostActions) -> PipelineResult:
        """Run the after-account-selection pipeline."""
        return self._run(POST_SELECTION, self.post_selection_rules(), inputs, actions)

    def _run(
        self,
        stage: str,
        rules: list[Rule],
        inputs: JobInputs,
        actions: HostActions,
    ) -> PipelineResult:
        ctx = RuleContext(inputs=inputs, actions=actions, config=self.config, clock=self.clock)
        state = BillingState(
            accounts=build_personal_accounts(inputs, self.config),
            cost=inputs.job.cost,
        )
        result = PipelineResult(stage=stage, state=state)

        for rule in rules:
            if not rule.enabled(self.config):
                continue

            try:
                outcome = rule.evaluate(ctx, state)
            except JobCanceledError as e:
                ctx.debug(f"{stage}: rule {rule.name} found the job canceled: {e.message}")
                outcome = RuleOutcome.halt(state, "job already canceled", rule=rule.name)
            except Exception as e:
                ctx.error(f"{stage}: rule {rule.name} failed: {e}")
                logger.debug("rule %s failed", rule.name, exc_info=True)
                outcome = RuleOutcome.proceed(state, f"error: {e}", rule=rule.name)

            result.outcomes.append(outcome)
            state = outcome.state

            if outcome.stop:
                result.stopped = True
                result.stopped_by = rule.name
                ctx.debug(f"{stage}: stopped by {rule.name} ({outcome.reason})")
                break

        result.state = state
        return result


# =============================================================================
# Hook Entry Points
# =============================================================================


def _engine_for(
    actions: HostActions,
    options: Mapping[str, Any] | RuleConfig | None,
    clock: Callable[[], int],
) -> RuleEngine:
    try:
        config = resolve_options(options)
    except ConfigurationError as e:
        actions.log_error(f"printpolicy: {e.message}")
        raise
    return RuleEngine(config, clock=clock)


def evaluate_pre_selection(
    inputs: JobInputs,
    actions: HostActions,
    options: Mapping[str, Any] | RuleConfig | None = None,
    clock: Callable[[], int] = now_millis,
) -> bool:
    """
    Job submission hook.

    Returns:
        True if further processing of the job should stop

    Raises:
        ConfigurationError: If ``options`` are invalid
    """
    engine = _engine_for(actions, options, clock)
    return engine.run_pre_selection(inputs, actions).stopped


def evaluate_post_selection(
    inputs: JobInputs,
    actions: HostActions,
    options: Mapping[str, Any] | RuleConfig | None = None,
    clock: Callable[[], int] = now_millis,
) -> bool:
    """
    After-account-selection hook.

    Returns:
        True if further processing of the job should stop

    Raises:
        ConfigurationError: If ``options`` are invalid
    """
    engine = _engine_for(actions, options, clock)
    return engine.run_post_selection(inputs, actions).stopped
