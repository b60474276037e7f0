"""Tests for ListenerReaper class."""

from __future__ import annotations

from src.models.resources import LoadBalancerRef
from src.models.teardown_outcome import StageName
from src.teardown.listeners import ListenerReaper
from tests.fixtures.provider import FakeLoadBalancerProvider, lb_arn, listener_arn


class TestListenerReaper:
    """Test suite for listener deletion."""

    def test_deletes_every_listener_exactly_once(self) -> None:
        """Test N listeners produce exactly N delete calls."""
        provider = FakeLoadBalancerProvider()
        provider.add_load_balancer("lb-old", listeners=4)

        outcome = ListenerReaper(provider).reap("lb-old")

        assert outcome.stage == StageName.LISTENERS
        assert outcome.deleted == 4
        assert outcome.failed == 0
        deleted = [arn for _, arn in provider.deletes("delete_listener")]
        assert sorted(deleted) == sorted(listener_arn("lb-old", i) for i in range(4))
        assert len(set(deleted)) == 4

    def test_duplicate_listings_are_deleted_once(self) -> None:
        """Test a listener listed twice is only deleted once."""
        provider = FakeLoadBalancerProvider()
        ref = provider.add_load_balancer("lb-old", listeners=1)
        provider.listeners[ref.arn].append(provider.listeners[ref.arn][0])

        outcome = ListenerReaper(provider).reap("lb-old")

        assert outcome.deleted == 1
        assert len(provider.deletes("delete_listener")) == 1

    def test_no_listeners_is_success(self) -> None:
        """Test a load balancer without listeners succeeds with no deletes."""
        provider = FakeLoadBalancerProvider()
        provider.add_load_balancer("lb-old")

        outcome = ListenerReaper(provider).reap("lb-old")

        assert outcome.succeeded
        assert outcome.deleted == 0
        assert provider.deletes() == []

    def test_absent_load_balancer_is_success(self) -> None:
        """Test an already-deleted load balancer reports zero listeners, success."""
        provider = FakeLoadBalancerProvider()

        outcome = ListenerReaper(provider).reap("lb-old")

        assert outcome.succeeded
        assert outcome.deleted == 0
        assert provider.calls == [("describe_load_balancer", "lb-old")]

    def test_replaced_load_balancer_is_treated_as_gone(self) -> None:
        """Test a different ARN under the same name means the original is gone."""
        provider = FakeLoadBalancerProvider()
        provider.add_load_balancer("lb-old", listeners=2, arn=lb_arn("lb-old", "ffffffffffffffff"))
        pinned = LoadBalancerRef(name="lb-old", arn=lb_arn("lb-old"))

        outcome = ListenerReaper(provider).reap(pinned)

        assert outcome.succeeded
        assert outcome.deleted == 0
        assert provider.deletes() == []

    def test_listener_already_deleted_counts_as_absent(self) -> None:
        """Test ListenerNotFound on delete is benign."""
        provider = FakeLoadBalancerProvider()
        ref = provider.add_load_balancer("lb-old", listeners=2)
        gone = provider.listeners[ref.arn][0]
        provider.fail_on("delete_listener", gone.arn, code="ListenerNotFound", not_found=True)

        outcome = ListenerReaper(provider).reap("lb-old")

        assert outcome.succeeded
        assert outcome.deleted == 1
        assert outcome.already_absent == 1

    def test_partial_failure_stops_and_reports(self) -> None:
        """Test a failed delete after a successful one is reported as a failure."""
        provider = FakeLoadBalancerProvider()
        ref = provider.add_load_balancer("lb-old", listeners=3)
        second = provider.listeners[ref.arn][1]
        provider.fail_on("delete_listener", second.arn, code="AccessDenied")

        outcome = ListenerReaper(provider).reap("lb-old")

        assert not outcome.succeeded
        assert outcome.deleted == 1
        assert outcome.failed == 1
        assert outcome.failures[0].resource_id == second.arn
        assert outcome.failures[0].error_code == "AccessDenied"
        # third listener never attempted
        assert len(provider.deletes("delete_listener")) == 2

    def test_resolution_error_is_failure(self) -> None:
        """Test a describe error other than not-found fails the stage."""
        provider = FakeLoadBalancerProvider()
        provider.add_load_balancer("lb-old", listeners=1)
        provider.fail_on("describe_load_balancer", "lb-old", code="Throttling")

        outcome = ListenerReaper(provider).reap("lb-old")

        assert outcome.failed == 1
        assert outcome.failures[0].error_code == "Throttling"
        assert provider.deletes() == []
