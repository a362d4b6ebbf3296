"""
Chain walker unit tests.

Tests cover:
  - first resolvable level above the starting point
  - skipping levels with no approver
  - exhausted chain (level capped at CHRO)
  - directory failures propagate, never read as "no approver"
"""
import pytest

from training_workflow.core.exceptions import DirectoryUnavailable
from training_workflow.services.chain import Route, walk


class FakeLocator:
    """Level -> approver map; records which levels were asked for."""

    def __init__(self, approvers, fail_at=None):
        self.approvers = approvers
        self.fail_at = fail_at
        self.calls = []

    def locate(self, level, employee_id):
        self.calls.append(level)
        if level == self.fail_at:
            raise DirectoryUnavailable("locate")
        return self.approvers.get(level)


FULL_ORG = {1: "mgr", 2: "hrbp", 3: "lnd", 4: "chro"}


class TestWalk:
    def test_next_level_resolves(self):
        route = walk(0, "emp", FakeLocator(FULL_ORG))
        assert route == Route("mgr", 1, "manager")
        assert not route.exhausted

    def test_walk_from_middle_of_chain(self):
        route = walk(2, "emp", FakeLocator(FULL_ORG))
        assert route == Route("lnd", 3, "l_and_d")

    def test_skips_unresolved_levels(self):
        locator = FakeLocator({3: "lnd", 4: "chro"})
        route = walk(0, "emp", locator)
        assert route == Route("lnd", 3, "l_and_d")
        assert locator.calls == [1, 2, 3]

    def test_only_walks_upwards(self):
        locator = FakeLocator(FULL_ORG)
        walk(1, "emp", locator)
        assert locator.calls == [2]


class TestExhausted:
    def test_no_approver_anywhere(self):
        locator = FakeLocator({})
        route = walk(0, "emp", locator)
        assert route.exhausted
        assert route.approver_id is None
        assert route.role is None
        assert route.level == 1
        assert locator.calls == [1, 2, 3, 4]

    def test_terminal_level_unresolved(self):
        route = walk(3, "emp", FakeLocator({1: "mgr", 2: "hrbp", 3: "lnd"}))
        assert route == Route(None, 4, None)

    def test_already_at_terminal_level(self):
        locator = FakeLocator(FULL_ORG)
        route = walk(4, "emp", locator)
        assert route.exhausted
        assert route.level == 4
        assert locator.calls == []


class TestDirectoryFailure:
    def test_failure_propagates(self):
        locator = FakeLocator(FULL_ORG, fail_at=1)
        with pytest.raises(DirectoryUnavailable):
            walk(0, "emp", locator)

    def test_failure_on_skipped_level_is_not_a_skip(self):
        locator = FakeLocator({3: "lnd"}, fail_at=2)
        with pytest.raises(DirectoryUnavailable):
            walk(0, "emp", locator)
        assert locator.calls == [1, 2]
