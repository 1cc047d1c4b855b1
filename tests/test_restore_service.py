"""
Tests for restore and copy operations against an in-memory store.
"""
import json
from unittest.mock import patch

import pytest

from conftest import POLICY_ONE_ID, RESOURCE_GROUP, SUBSCRIPTION_ID, TESTDATA_DIR
from wafkeeper.core.config import settings
from wafkeeper.core.exceptions import InvalidResourceID, InvalidScope, TargetNotFound
from wafkeeper.services.reconciliation import Outcome
from wafkeeper.services.restore_service import CopyOptions, RestoreOptions, RestoreService
from wafkeeper.utils.resource_id import build_policy_id


@pytest.fixture
def restore_service(store_with_policy_one, always_yes):
    return RestoreService(store_with_policy_one, confirm=always_yes)


class TestRestorePolicies:
    """Test restoring backups."""

    def test_restore_from_file_applies_changes(self, restore_service, store_with_policy_one, policy_two):
        options = RestoreOptions(backup_paths=[str(TESTDATA_DIR / "wrapped-policy-two.json")], force=True)
        result = restore_service.restore_policies(options)

        assert len(result.applied) == 1
        assert len(store_with_policy_one.puts) == 1
        pushed = store_with_policy_one.puts[0]
        assert pushed["name"] == "mypolicyone"
        assert pushed["policy"] == policy_two.policy

    def test_identical_backup_is_skipped(self, restore_service, store_with_policy_one, policy_one):
        result = restore_service.restore_policies(RestoreOptions(), backups=[policy_one])

        assert result.applied == []
        assert result.skipped[0][1] == "target policy rules are identical to backup"
        assert store_with_policy_one.puts == []

    def test_custom_only_skips_when_only_managed_rules_differ(
        self, restore_service, store_with_policy_one, policy_one, policy_two
    ):
        policy_two.policy.properties.custom_rules = policy_one.policy.properties.custom_rules
        options = RestoreOptions(custom_rules_only=True)

        result = restore_service.restore_policies(options, backups=[policy_two])

        assert result.skipped[0][1] == "target policy's custom rules are identical to those in backup"
        assert store_with_policy_one.puts == []

    def test_declined_confirmation_pushes_nothing(self, store_with_policy_one, policy_two, always_no):
        service = RestoreService(store_with_policy_one, confirm=always_no)
        result = service.restore_policies(RestoreOptions(), backups=[policy_two])

        assert result.skipped[0][1] == "declined"
        assert store_with_policy_one.puts == []

    def test_restore_to_explicit_target(self, restore_service, store_with_policy_one, policy_one, policy_two):
        target_id = build_policy_id(SUBSCRIPTION_ID, "other", "mypolicytwo")
        store_with_policy_one.add(SUBSCRIPTION_ID, "other", "mypolicytwo", policy_one.policy)

        options = RestoreOptions(target_policy=target_id, force=True)
        result = restore_service.restore_policies(options, backups=[policy_two])

        assert result.applied[0].policy_id == target_id
        pushed = store_with_policy_one.puts[0]
        assert (pushed["resource_group"], pushed["name"]) == ("other", "mypolicytwo")

    def test_missing_explicit_target_fails(self, restore_service, policy_two):
        target_id = build_policy_id(SUBSCRIPTION_ID, RESOURCE_GROUP, "missing")
        options = RestoreOptions(target_policy=target_id, fail_fast=True)

        with pytest.raises(TargetNotFound):
            restore_service.restore_policies(options, backups=[policy_two])

    def test_several_backups_to_one_target_rejected(self, restore_service, policy_one, policy_two):
        options = RestoreOptions(target_policy=POLICY_ONE_ID)
        with pytest.raises(InvalidScope):
            restore_service.restore_policies(options, backups=[policy_one, policy_two])

    def test_invalid_target_id_rejected(self, restore_service, policy_two):
        with pytest.raises(InvalidResourceID):
            restore_service.restore_policies(RestoreOptions(target_policy="/subscriptions/x"), backups=[policy_two])

    def test_conflicting_scope_flags_rejected(self, restore_service, policy_two):
        options = RestoreOptions(custom_rules_only=True, managed_rules_only=True)
        with pytest.raises(InvalidScope):
            restore_service.restore_policies(options, backups=[policy_two])

    def test_empty_directory_rejected(self, restore_service, tmp_path):
        with pytest.raises(InvalidScope) as exc_info:
            restore_service.restore_policies(RestoreOptions(backup_paths=[str(tmp_path)]))
        assert "no backup files" in str(exc_info.value)

    def test_unmatched_backup_created_in_resource_group(self, store, policy_two, always_yes):
        service = RestoreService(store, confirm=always_yes)
        options = RestoreOptions(subscription_id=SUBSCRIPTION_ID, resource_group="newgroup")

        result = service.restore_policies(options, backups=[policy_two])

        assert len(result.applied) == 1
        assert store.puts[0]["resource_group"] == "newgroup"
        assert store.get_policy(SUBSCRIPTION_ID, "newgroup", "mypolicyone") is not None

    def test_unmatched_backup_created_in_default_subscription(self, store, policy_two, always_yes):
        policy_two.subscription_id = ""
        service = RestoreService(store, confirm=always_yes)

        with patch.object(settings, "DEFAULT_SUBSCRIPTION_ID", SUBSCRIPTION_ID):
            result = service.restore_policies(RestoreOptions(resource_group="newgroup"), backups=[policy_two])

        assert len(result.applied) == 1
        assert store.puts[0]["subscription_id"] == SUBSCRIPTION_ID
        assert result.applied[0].policy_id == build_policy_id(SUBSCRIPTION_ID, "newgroup", "mypolicyone")

    def test_backup_with_malformed_policy_id_is_created(self, store, policy_two, always_yes):
        """A backup whose origin id cannot be parsed matches nothing."""
        policy_two.policy_id = "not-a-resource-id"
        service = RestoreService(store, confirm=always_yes)
        options = RestoreOptions(subscription_id=SUBSCRIPTION_ID, resource_group="newgroup", fail_fast=True)

        result = service.restore_policies(options, backups=[policy_two])

        assert result.errors == []
        assert result.applied[0].policy_id == build_policy_id(SUBSCRIPTION_ID, "newgroup", "mypolicyone")
        assert store.puts[0]["resource_group"] == "newgroup"

    def test_restored_rules_pushed_in_priority_order(self, restore_service, store_with_policy_one, policy_two):
        policy_two.policy.rules.reverse()
        result = restore_service.restore_policies(RestoreOptions(force=True), backups=[policy_two])

        assert len(result.applied) == 1
        pushed = store_with_policy_one.puts[0]["policy"]
        assert [r.priority for r in pushed.rules] == [2000, 4000]

        again = restore_service.restore_policies(RestoreOptions(force=True), backups=[policy_two])
        assert again.applied == []
        assert len(store_with_policy_one.puts) == 1

    def test_failures_recorded_and_batch_continues(self, store_with_policy_one, policy_two, always_yes):
        """The unmatched backup fails, the matched one is still restored."""
        stray = policy_two.model_copy(deep=True)
        stray.policy_id = build_policy_id(SUBSCRIPTION_ID, RESOURCE_GROUP, "gone")
        stray.name = "gone"
        service = RestoreService(store_with_policy_one, confirm=always_yes)

        result = service.restore_policies(RestoreOptions(force=True), backups=[stray, policy_two])

        assert len(result.errors) == 1
        assert isinstance(result.errors[0][1], InvalidScope)
        assert len(result.applied) == 1

    def test_fail_fast_pushes_nothing(self, store_with_policy_one, policy_two, always_yes):
        """Reconciliation of every backup completes before the first push."""
        stray = policy_two.model_copy(deep=True)
        stray.policy_id = build_policy_id(SUBSCRIPTION_ID, RESOURCE_GROUP, "gone")
        service = RestoreService(store_with_policy_one, confirm=always_yes)

        with pytest.raises(InvalidScope):
            service.restore_policies(RestoreOptions(force=True, fail_fast=True), backups=[policy_two, stray])
        assert store_with_policy_one.puts == []

    def test_push_failure_recorded(self, store_with_policy_one, policy_two, always_yes):
        store_with_policy_one.fail_puts_for.add("mypolicyone")
        service = RestoreService(store_with_policy_one, confirm=always_yes)

        result = service.restore_policies(RestoreOptions(force=True), backups=[policy_two])

        assert result.applied == []
        assert "rejected" in str(result.errors[0][1])

    def test_backups_loaded_from_directory(self, restore_service, store_with_policy_one, tmp_path):
        source = json.loads((TESTDATA_DIR / "wrapped-policy-two.json").read_text())
        (tmp_path / "a.json").write_text(json.dumps(source))
        (tmp_path / "notes.txt").write_text("not a backup")

        result = restore_service.restore_policies(RestoreOptions(backup_paths=[str(tmp_path)], force=True))
        assert len(result.applied) == 1


class TestCopyRules:
    """Test copying rules between policies."""

    @pytest.fixture
    def target_id(self, store_with_policy_one, policy_two):
        store_with_policy_one.add(SUBSCRIPTION_ID, "other", "copytarget", policy_two.policy)
        return build_policy_id(SUBSCRIPTION_ID, "other", "copytarget")

    def test_copy_custom_rules(self, restore_service, store_with_policy_one, policy_one, policy_two, target_id):
        options = CopyOptions(source=POLICY_ONE_ID, target=target_id, custom_rules_only=True, force=True)
        decision = restore_service.copy_rules(options)

        assert decision.outcome == Outcome.APPLY
        pushed = store_with_policy_one.puts[0]
        assert pushed["name"] == "copytarget"
        assert pushed["policy"].properties.custom_rules == policy_one.policy.properties.custom_rules
        assert pushed["policy"].properties.managed_rules == policy_two.policy.properties.managed_rules

    def test_copy_prompt_mentions_policy(self, restore_service, always_yes, target_id):
        restore_service.copy_rules(CopyOptions(source=POLICY_ONE_ID, target=target_id))
        _, detail = always_yes.calls[0]
        assert detail.startswith(f"with policy {POLICY_ONE_ID}")

    def test_copy_identical_rules_skipped(self, restore_service, store_with_policy_one, policy_one):
        store_with_policy_one.add(SUBSCRIPTION_ID, "other", "twin", policy_one.policy)
        options = CopyOptions(source=POLICY_ONE_ID, target=build_policy_id(SUBSCRIPTION_ID, "other", "twin"))

        decision = restore_service.copy_rules(options)
        assert decision.outcome == Outcome.SKIP
        assert store_with_policy_one.puts == []

    def test_same_source_and_target_rejected(self, restore_service):
        with pytest.raises(InvalidScope) as exc_info:
            restore_service.copy_rules(CopyOptions(source=POLICY_ONE_ID, target=POLICY_ONE_ID.upper()))
        assert str(exc_info.value) == "source and target must be different"

    def test_missing_source(self, restore_service, target_id):
        missing = build_policy_id(SUBSCRIPTION_ID, RESOURCE_GROUP, "missing")
        with pytest.raises(TargetNotFound) as exc_info:
            restore_service.copy_rules(CopyOptions(source=missing, target=target_id))
        assert "source policy not found" in str(exc_info.value)

    def test_missing_target(self, restore_service):
        missing = build_policy_id(SUBSCRIPTION_ID, RESOURCE_GROUP, "missing")
        with pytest.raises(TargetNotFound) as exc_info:
            restore_service.copy_rules(CopyOptions(source=POLICY_ONE_ID, target=missing))
        assert "target policy not found" in str(exc_info.value)

    def test_async_push_passed_to_store(self, restore_service, store_with_policy_one, target_id):
        restore_service.copy_rules(CopyOptions(source=POLICY_ONE_ID, target=target_id, force=True, wait=False))
        assert store_with_policy_one.puts[0]["wait"] is False
