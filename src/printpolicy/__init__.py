"""
printpolicy - Site print policy rules for a print management server.

printpolicy is called from the print server's job hooks and applies site
policy to each job:
- Account selection for users without a client
- Free printing and group discounts
- Site restrictions and shared account printer limits
- External account gating with a remembered choice
- Balance warnings

Example usage:
    from printpolicy import evaluate_post_selection

    def after_account_selection_hook(inputs, actions):
        if evaluate_post_selection(inputs, actions, {"notifyPrinted": True}):
            return

    $ printpolicy simulate job.yaml --config site.yaml
"""

__version__ = "0.1.0"
__author__ = "printpolicy Contributors"

from printpolicy.config import load_options, resolve_options
from printpolicy.engine import (
    PipelineResult,
    RuleEngine,
    evaluate_post_selection,
    evaluate_pre_selection,
)
from printpolicy.host import HostActions, JobInputs, UserContext

__all__ = [
    "HostActions",
    "JobInputs",
    "PipelineResult",
    "RuleEngine",
    "UserContext",
    "__author__",
    "__version__",
    "evaluate_post_selection",
    "evaluate_pre_selection",
    "load_options",
    "resolve_options",
]
