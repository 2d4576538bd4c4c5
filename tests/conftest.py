"""
Pytest configuration and fixtures for printpolicy tests.

This module provides shared fixtures used across unit and integration tests.
"""

from collections.abc import Callable, Iterable
from decimal import Decimal
from pathlib import Path
from typing import Any, Generator
import tempfile

import pytest

from printpolicy.config import resolve_options
from printpolicy.host import JobInputs, RecordingHost, StaticUser
from printpolicy.rules.base import BillingState, RuleContext
from printpolicy.schema import ClientContext, JobSnapshot, PrinterContext

# 2023-11-14T22:13:20Z
NOW_MS = 1_700_000_000_000


def fixed_clock() -> int:
    return NOW_MS


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def host() -> RecordingHost:
    """A fresh recording host with a standard cost of $0.40."""
    return RecordingHost(standard_cost=Decimal("0.40"))


@pytest.fixture
def make_inputs() -> Callable[..., JobInputs]:
    """Factory for JobInputs with sensible defaults."""

    def _make(
        *,
        cost: str = "1.00",
        grayscale_pages: int = 0,
        color_pages: int = 0,
        printer: str = "ug-250-color",
        printer_groups: Iterable[str] = (),
        user_groups: Iterable[str] = (),
        balances: dict[str, Decimal] | None = None,
        properties: dict[str, str] | None = None,
        client_running: bool = True,
        web_print: bool = False,
        shared_account: str = "",
        analysis_complete: bool = True,
        document: str = "report.pdf",
    ) -> JobInputs:
        job = JobSnapshot(
            cost=Decimal(cost),
            total_color_pages=color_pages,
            total_grayscale_pages=grayscale_pages,
            is_analysis_complete=analysis_complete,
            is_web_print_job=web_print,
            selected_shared_account_name=shared_account,
            printer_name=printer,
            document_name=document,
            username="alice",
            client_ip="10.0.0.5",
        )
        return JobInputs(
            job=job,
            user=StaticUser(
                "alice",
                groups=list(user_groups),
                balances=balances,
                properties=properties,
            ),
            printer=PrinterContext(name=printer, groups=list(printer_groups)),
            client=ClientContext(is_running=client_running),
        )

    return _make


@pytest.fixture
def make_context(host: RecordingHost) -> Callable[..., RuleContext]:
    """Factory for a RuleContext around the shared recording host."""

    def _make(inputs: JobInputs, options: dict[str, Any] | None = None) -> RuleContext:
        return RuleContext(
            inputs=inputs,
            actions=host,
            config=resolve_options(options),
            clock=fixed_clock,
        )

    return _make


@pytest.fixture
def now_ms() -> int:
    """The time every RuleContext built by make_context sees."""
    return NOW_MS


@pytest.fixture
def make_state() -> Callable[..., BillingState]:
    """Factory for billing state seeded with the job's cost."""

    def _make(inputs: JobInputs, accounts: Iterable[str] = ()) -> BillingState:
        return BillingState(accounts=tuple(accounts), cost=inputs.job.cost)

    return _make


@pytest.fixture
def sample_options_yaml() -> str:
    """Return a site options YAML for testing."""
    return """
discountGroups:
  CITES-ICS-Staff:
    bw: 0.05
    color: 0.20
notifyPrinted: true
siteRestrictUsers:
  restrictGroupName: Lab-SiteUsers
"""


@pytest.fixture
def sample_scenario_yaml() -> str:
    """Return a scenario where a site restricted user prints at the wrong site."""
    return """
job:
  username: alice
  printer_name: ug-250-color
  document_name: thesis.pdf
  cost: "2.50"
  total_grayscale_pages: 10
client:
  is_running: true
printer:
  groups: ["Department:ICS"]
user:
  groups: [CITES-PaperCut-SiteUsers, CITES-PaperCut-SiteUsers-GRAINGER]
"""
