"""
Unit tests for cost rules.

Tests cover:
- GroupDiscountRule: cheapest rate wins, invalid rates skipped
- FreeGroupRule: auto-derived and explicit groups, undo on shared account
- NotifyPrintedRule
- format_cost
"""

from decimal import Decimal

from printpolicy.host import RecordingHost
from printpolicy.rules import FreeGroupRule, GroupDiscountRule, NotifyPrintedRule, format_cost

STAFF_RATES = {"Staff": {"bw": 0.05, "color": 0.20}, "Grads": {"bw": 0.03, "color": 0.25}}


class TestFormatCost:
    def test_rounds_to_cents(self) -> None:
        assert format_cost(Decimal("1.5")) == "$1.50"
        assert format_cost(Decimal("0.125")) == "$0.13"
        assert format_cost(Decimal("0")) == "$0.00"


# =============================================================================
# Group Discounts
# =============================================================================


class TestGroupDiscount:
    """Tests for GroupDiscountRule."""

    def test_cheapest_group_wins(self, make_inputs, make_context, make_state, host) -> None:
        """Two qualifying groups: min(1.00, 0.50, 0.56) = 0.50."""
        inputs = make_inputs(
            cost="1.00",
            grayscale_pages=2,
            color_pages=2,
            user_groups=["Staff", "Grads"],
        )
        ctx = make_context(inputs, {"discountGroups": STAFF_RATES})

        outcome = GroupDiscountRule().evaluate(ctx, make_state(inputs))

        assert outcome.stop is False
        assert outcome.state.cost == Decimal("0.50")
        assert host.names() == ["set_cost", "add_comment"]
        assert host.cost == Decimal("0.50")
        assert "Original cost $1.00" in host.calls("add_comment")[0].args["comment"]
        assert "Staff" in host.calls("add_comment")[0].args["comment"]

    def test_original_cost_kept_when_cheaper(
        self, make_inputs, make_context, make_state, host
    ) -> None:
        """The job's own cost is a lower bound on the discount."""
        inputs = make_inputs(cost="0.10", grayscale_pages=2, color_pages=2, user_groups=["Staff"])
        ctx = make_context(inputs, {"discountGroups": STAFF_RATES})

        outcome = GroupDiscountRule().evaluate(ctx, make_state(inputs))

        assert outcome.state.cost == Decimal("0.10")
        assert host.names() == []

    def test_non_member_groups_ignored(self, make_inputs, make_context, make_state, host) -> None:
        inputs = make_inputs(cost="1.00", grayscale_pages=2, user_groups=["Other"])
        ctx = make_context(inputs, {"discountGroups": STAFF_RATES})

        GroupDiscountRule().evaluate(ctx, make_state(inputs))

        assert host.names() == []

    def test_non_numeric_rate_skipped(self, make_inputs, make_context, make_state, host) -> None:
        """A bad rate is logged and that group skipped; others still apply."""
        inputs = make_inputs(cost="1.00", grayscale_pages=10, user_groups=["Bad", "Grads"])
        rates = {"Bad": {"bw": "0.01", "color": 0.01}, "Grads": {"bw": 0.03, "color": 0.25}}
        ctx = make_context(inputs, {"discountGroups": rates})

        outcome = GroupDiscountRule().evaluate(ctx, make_state(inputs))

        assert outcome.state.cost == Decimal("0.30")
        assert any("groupRate.bw is not a number" in msg for _, msg in host.logs)

    def test_boolean_rate_rejected(self, make_inputs, make_context, make_state, host) -> None:
        inputs = make_inputs(cost="1.00", color_pages=1, user_groups=["Staff"])
        ctx = make_context(inputs, {"discountGroups": {"Staff": {"bw": 0, "color": True}}})

        GroupDiscountRule().evaluate(ctx, make_state(inputs))

        assert host.names() == []
        assert any("groupRate.color is not a number" in msg for _, msg in host.logs)

    def test_negative_candidate_ignored(self, make_inputs, make_context, make_state, host) -> None:
        inputs = make_inputs(cost="1.00", grayscale_pages=1, user_groups=["Staff"])
        ctx = make_context(inputs, {"discountGroups": {"Staff": {"bw": -1, "color": 0}}})

        GroupDiscountRule().evaluate(ctx, make_state(inputs))

        assert host.names() == []

    def test_skipped_until_analysis_complete(
        self, make_inputs, make_context, make_state, host
    ) -> None:
        inputs = make_inputs(analysis_complete=False, grayscale_pages=2, user_groups=["Staff"])
        ctx = make_context(inputs, {"discountGroups": STAFF_RATES})

        outcome = GroupDiscountRule().evaluate(ctx, make_state(inputs))

        assert outcome.reason == "analysis incomplete"
        assert host.names() == []

    def test_idempotent_on_discounted_cost(
        self, make_inputs, make_context, make_state, host
    ) -> None:
        """Running again on an already discounted job changes nothing."""
        inputs = make_inputs(cost="0.50", grayscale_pages=2, color_pages=2, user_groups=["Staff"])
        ctx = make_context(inputs, {"discountGroups": STAFF_RATES})

        GroupDiscountRule().evaluate(ctx, make_state(inputs))

        assert host.names() == []

    def test_enabled_only_with_groups(self, make_inputs, make_context) -> None:
        rule = GroupDiscountRule()
        inputs = make_inputs()
        assert not rule.enabled(make_context(inputs).config)
        assert rule.enabled(make_context(inputs, {"discountGroups": STAFF_RATES}).config)


# =============================================================================
# Free Groups
# =============================================================================


class TestFreeGroups:
    """Tests for FreeGroupRule."""

    def test_auto_department_group(self, make_inputs, make_context, make_state, host) -> None:
        """Members of the printer's department free group print for free."""
        inputs = make_inputs(
            cost="2.50",
            printer_groups=["Department:ICS"],
            user_groups=["CITES-PaperCut-FreePrinting-ICS"],
        )
        ctx = make_context(inputs)

        outcome = FreeGroupRule().evaluate(ctx, make_state(inputs))

        assert outcome.state.cost == Decimal("0")
        assert host.cost == Decimal("0")
        assert host.names() == ["set_cost", "add_comment"]
        assert "Original cost $2.50" in host.calls("add_comment")[0].args["comment"]

    def test_auto_prefix_case_insensitive(
        self, make_inputs, make_context, make_state, host
    ) -> None:
        inputs = make_inputs(
            printer_groups=["DEPARTMENT:LIB"],
            user_groups=["CITES-PaperCut-FreePrinting-LIB"],
        )

        outcome = FreeGroupRule().evaluate(make_context(inputs), make_state(inputs))

        assert outcome.state.cost == Decimal("0")

    def test_other_department_not_free(self, make_inputs, make_context, make_state, host) -> None:
        inputs = make_inputs(
            printer_groups=["Department:LIB"],
            user_groups=["CITES-PaperCut-FreePrinting-ICS"],
        )

        FreeGroupRule().evaluate(make_context(inputs), make_state(inputs))

        assert host.names() == []

    def test_explicit_group_list(self, make_inputs, make_context, make_state, host) -> None:
        inputs = make_inputs(user_groups=["Everyone-Free"])
        ctx = make_context(inputs, {"freeGroups": ["Nobody", "Everyone-Free"]})

        outcome = FreeGroupRule().evaluate(ctx, make_state(inputs))

        assert outcome.state.cost == Decimal("0")

    def test_custom_template(self, make_inputs, make_context, make_state, host) -> None:
        inputs = make_inputs(printer_groups=["Department:ICS"], user_groups=["free-ICS"])
        ctx = make_context(inputs, {"freeGroupTemplate": "free-%department%"})

        outcome = FreeGroupRule().evaluate(ctx, make_state(inputs))

        assert outcome.state.cost == Decimal("0")

    def test_already_free_is_noop(self, make_inputs, make_context, make_state, host) -> None:
        inputs = make_inputs(
            cost="0",
            printer_groups=["Department:ICS"],
            user_groups=["CITES-PaperCut-FreePrinting-ICS"],
        )

        FreeGroupRule().evaluate(make_context(inputs), make_state(inputs))

        assert host.names() == []

    def test_shared_account_restores_standard_cost(
        self, make_inputs, make_context, make_state, host
    ) -> None:
        """Choosing a shared account undoes an earlier zeroing."""
        inputs = make_inputs(
            cost="0",
            shared_account="Research Grant",
            printer_groups=["Department:ICS"],
            user_groups=["CITES-PaperCut-FreePrinting-ICS"],
        )

        outcome = FreeGroupRule().evaluate(make_context(inputs), make_state(inputs))

        assert outcome.state.cost == Decimal("0.40")
        assert host.calls("set_cost")[0].args["cost"] == Decimal("0.40")

    def test_shared_account_with_cost_untouched(
        self, make_inputs, make_context, make_state, host
    ) -> None:
        inputs = make_inputs(cost="0.40", shared_account="Research Grant")

        FreeGroupRule().evaluate(make_context(inputs), make_state(inputs))

        assert host.names() == []

    def test_shared_account_free_printer(self, make_inputs, make_context, make_state) -> None:
        """Nothing to restore when the printer itself is free."""
        free_host = RecordingHost(standard_cost=Decimal("0"))
        inputs = make_inputs(cost="0", shared_account="Research Grant")
        ctx = make_context(inputs)
        ctx.actions = free_host

        FreeGroupRule().evaluate(ctx, make_state(inputs))

        assert free_host.names() == []

    def test_skipped_until_analysis_complete(
        self, make_inputs, make_context, make_state, host
    ) -> None:
        inputs = make_inputs(
            analysis_complete=False,
            printer_groups=["Department:ICS"],
            user_groups=["CITES-PaperCut-FreePrinting-ICS"],
        )

        FreeGroupRule().evaluate(make_context(inputs), make_state(inputs))

        assert host.names() == []

    def test_disabled(self, make_inputs, make_context) -> None:
        config = make_context(make_inputs(), {"freeGroups": False}).config
        assert not FreeGroupRule().enabled(config)


# =============================================================================
# Notifications
# =============================================================================


class TestNotifyPrinted:
    """Tests for NotifyPrintedRule."""

    def test_message_sent(self, make_inputs, make_context, make_state, host) -> None:
        inputs = make_inputs(cost="1.5", document="thesis.pdf")
        ctx = make_context(inputs, {"notifyPrinted": True})

        outcome = NotifyPrintedRule().evaluate(ctx, make_state(inputs))

        assert outcome.stop is False
        text = host.calls("send_message")[0].args["text"]
        assert text == (
            "The following job is queued for printing on ug-250-color: "
            "thesis.pdf (cost: $1.50)."
        )

    def test_reports_effective_cost(self, make_inputs, make_context, make_state, host) -> None:
        """The message shows the cost after discounts."""
        inputs = make_inputs(cost="1.00")
        state = make_state(inputs).with_cost(Decimal("0.25"))

        NotifyPrintedRule().evaluate(make_context(inputs, {"notifyPrinted": True}), state)

        assert "$0.25" in host.calls("send_message")[0].args["text"]

    def test_silent_without_client(self, make_inputs, make_context, make_state, host) -> None:
        inputs = make_inputs(client_running=False)

        NotifyPrintedRule().evaluate(make_context(inputs), make_state(inputs))

        assert host.names() == []

    def test_silent_for_web_print(self, make_inputs, make_context, make_state, host) -> None:
        inputs = make_inputs(web_print=True)

        NotifyPrintedRule().evaluate(make_context(inputs), make_state(inputs))

        assert host.names() == []

    def test_disabled_by_default(self, make_inputs, make_context) -> None:
        assert not NotifyPrintedRule().enabled(make_context(make_inputs()).config)
