"""
Org directory & approver locator tests.

Tests cover:
  - OrgDirectory point lookups
  - Manager / HRBP / L&D / CHRO resolution
  - HRBP system-wide fallback (enabled and disabled)
  - employee is never resolved as their own approver
  - record-store failures surface as DirectoryUnavailable
"""
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from training_workflow.core.exceptions import DirectoryUnavailable
from training_workflow.models import db
from training_workflow.services.directory import ApproverLocator, OrgDirectory
from training_workflow.services.directory_seed import DEMO_PROFILES, seed_demo_directory


@pytest.fixture()
def directory(org):
    return OrgDirectory()


@pytest.fixture()
def locator(org):
    return ApproverLocator()


class TestOrgDirectory:
    def test_exists(self, directory):
        assert directory.exists("emp-1") is True
        assert directory.exists("ghost") is False

    def test_roles_of(self, directory):
        assert sorted(directory.roles_of("mgr-1")) == ["employee", "manager"]
        assert directory.roles_of("ghost") == []

    def test_manager_and_entity(self, directory):
        assert directory.manager_of("emp-1") == "mgr-1"
        assert directory.manager_of("emp-nomgr") is None
        assert directory.entity_of("emp-1") == "entity-field"

    def test_find_hrbp_is_entity_scoped(self, directory):
        assert directory.find_hrbp("entity-hq") == "hrbp-hq"
        assert directory.find_hrbp("entity-field") == "hrbp-field"
        assert directory.find_hrbp("entity-remote") is None

    def test_find_by_role_is_deterministic(self, directory, add_profile):
        add_profile("lnd-0", "entity-hq", "chro-1", ("l_and_d",))
        assert directory.find_by_role("l_and_d") == "lnd-0"
        assert directory.find_by_role("l_and_d", exclude="lnd-0") == "lnd-1"


class TestLocate:
    def test_manager_level(self, locator):
        assert locator.locate(1, "emp-1") == "mgr-1"

    def test_no_manager_on_file(self, locator):
        assert locator.locate(1, "emp-nomgr") is None

    def test_hrbp_level_uses_employee_entity(self, locator):
        assert locator.locate(2, "emp-1") == "hrbp-field"

    def test_lnd_and_chro_levels(self, locator):
        assert locator.locate(3, "emp-1") == "lnd-1"
        assert locator.locate(4, "emp-1") == "chro-1"

    def test_level_zero_has_no_approver(self, locator):
        assert locator.locate(0, "emp-1") is None


class TestHrbpFallback:
    def test_fallback_to_any_hrbp(self, locator):
        # entity-remote has no HRBP; lowest id across the org is chosen
        assert locator.locate(2, "emp-remote") == "hrbp-field"

    def test_fallback_disabled(self, org):
        locator = ApproverLocator(hrbp_fallback=False)
        assert locator.locate(2, "emp-remote") is None

    def test_fallback_follows_config(self, app, org, monkeypatch):
        monkeypatch.setitem(app.config, "HRBP_SYSTEM_WIDE_FALLBACK", False)
        assert ApproverLocator().hrbp_fallback is False


class TestNeverSelfApprover:
    def test_self_managed_profile(self, org, add_profile):
        profile = add_profile("loop-1", "entity-field", None)
        profile.manager_id = "loop-1"
        db.session.commit()
        assert ApproverLocator().locate(1, "loop-1") is None

    def test_only_lnd_user_requesting(self, locator):
        assert locator.locate(3, "lnd-1") is None

    def test_hrbp_requesting_falls_back_to_other_hrbp(self, locator):
        # hrbp-field is the only HRBP of its entity
        assert locator.locate(2, "hrbp-field") == "hrbp-hq"


class TestDirectoryUnavailable:
    def test_lookup_failure_is_typed(self, directory):
        err = OperationalError("SELECT", {}, Exception("connection refused"))
        with patch("sqlalchemy.orm.Session.execute", side_effect=err):
            with pytest.raises(DirectoryUnavailable) as exc_info:
                directory.manager_of("emp-1")
        assert exc_info.value.operation == "manager_of"

    def test_locate_does_not_swallow_failure(self, locator):
        err = OperationalError("SELECT", {}, Exception("connection refused"))
        with patch("sqlalchemy.orm.Session.execute", side_effect=err):
            with pytest.raises(DirectoryUnavailable):
                locator.locate(2, "emp-1")


class TestSeedDirectory:
    def test_seed_is_idempotent(self):
        assert seed_demo_directory() == len(DEMO_PROFILES)
        assert seed_demo_directory() == 0

    def test_seeded_chain_resolves(self):
        seed_demo_directory()
        locator = ApproverLocator()
        assert [locator.locate(level, "emp-1") for level in range(1, 5)] == [
            "mgr-eng", "hrbp-field", "lnd-1", "chro-1",
        ]

    def test_cli_command(self, app):
        result = app.test_cli_runner().invoke(args=["seed-directory"])
        assert result.exit_code == 0
        assert OrgDirectory().exists("chro-1")
