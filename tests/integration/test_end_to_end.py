"""
Integration tests for full rotation cycles.

Tests cover:
- A complete four-phase rotation through the Lambda entry point
- Every phase delivered twice
- Concurrent duplicate deliveries of the phases that write state
- Resuming a rotation after a failed phase
- Two rotations in a row
"""

from __future__ import annotations

import threading
from unittest.mock import patch

import pytest

from pgrotate.exceptions import CredentialVerificationError, DatabaseUpdateError
from pgrotate.lambda_function import lambda_handler
from pgrotate.models import RotationRequest, RotationStep, VersionStage

CURRENT = VersionStage.CURRENT
PENDING = VersionStage.PENDING
PREVIOUS = VersionStage.PREVIOUS


def run_cycle(orchestrator, token: str, secret_id: str = "s1", repeat: int = 1) -> None:
    for step in RotationStep:
        for _ in range(repeat):
            orchestrator.handle(RotationRequest(secret_id=secret_id, token=token, step=step))


def assert_single_holders(store, secret_id: str = "s1") -> None:
    stages = store.describe_stages(secret_id)
    for stage in VersionStage:
        holders = [vid for vid, labels in stages.items() if stage in labels]
        assert len(holders) <= 1, f"{stage.value} held by {holders}"
    assert len([vid for vid, labels in stages.items() if CURRENT in labels]) == 1


class TestFullRotation:
    """Tests for complete rotation cycles."""

    def test_lambda_events(self, orchestrator, store, fake_db):
        """Test the four Secrets Manager events rotate the credential."""
        with patch("pgrotate.lambda_function.build_orchestrator", return_value=orchestrator):
            for step in RotationStep:
                lambda_handler(
                    {"SecretId": "s1", "ClientRequestToken": "v2", "Step": step.value},
                    None,
                )

        current = store.read_version("s1", CURRENT)
        assert current.version_id == "v2"
        assert fake_db.users["svc"] == current.record.password
        assert current.record.password != "old"
        assert store.describe_stages("s1")["v1"] == [PREVIOUS]
        assert_single_holders(store)
        assert fake_db.open_connections == []

    def test_every_phase_delivered_twice(self, orchestrator, store, fake_db):
        """Test duplicate deliveries end in the same state as single ones."""
        run_cycle(orchestrator, "v2", repeat=2)

        current = store.read_version("s1", CURRENT)
        assert current.version_id == "v2"
        assert fake_db.users["svc"] == current.record.password
        assert store.version_ids("s1") == ["v1", "v2"]
        assert_single_holders(store)

    def test_two_rotations(self, orchestrator, store, fake_db):
        """Test a second rotation demotes the first and drops the oldest label."""
        run_cycle(orchestrator, "v2")
        run_cycle(orchestrator, "v3")

        stages = store.describe_stages("s1")
        assert CURRENT in stages["v3"]
        assert stages["v2"] == [PREVIOUS]
        assert stages["v1"] == []
        assert fake_db.users["svc"] == store.read_version("s1", CURRENT).record.password
        assert_single_holders(store)

    def test_old_password_stops_working(self, orchestrator, fake_db, current_record):
        """Test the previous password can no longer log in."""
        run_cycle(orchestrator, "v2")

        assert orchestrator.verifier.can_authenticate(current_record) is False


class TestRecovery:
    """Tests for resuming after failures."""

    def test_set_secret_retry_after_database_outage(self, orchestrator, store, fake_db):
        """Test a failed setSecret leaves state that a retry completes."""
        orchestrator.handle(RotationRequest("s1", "v2", RotationStep.CREATE_SECRET))
        fake_db.fail_statements = True

        with pytest.raises(DatabaseUpdateError):
            orchestrator.handle(RotationRequest("s1", "v2", RotationStep.SET_SECRET))

        assert fake_db.users["svc"] == "old"
        assert store.find_stage_holder("s1", CURRENT) == "v1"

        fake_db.fail_statements = False
        for step in (RotationStep.SET_SECRET, RotationStep.TEST_SECRET, RotationStep.FINISH_SECRET):
            orchestrator.handle(RotationRequest("s1", "v2", step))

        assert store.find_stage_holder("s1", CURRENT) == "v2"

    def test_finish_blocked_until_set_succeeds(self, orchestrator, store):
        """Test a skipped setSecret never leaves an unusable CURRENT."""
        orchestrator.handle(RotationRequest("s1", "v2", RotationStep.CREATE_SECRET))

        with pytest.raises(CredentialVerificationError):
            orchestrator.handle(RotationRequest("s1", "v2", RotationStep.FINISH_SECRET))

        current = store.read_version("s1", CURRENT)
        assert current.version_id == "v1"
        assert orchestrator.verifier.can_authenticate(current.record)


class TestConcurrentDelivery:
    """Tests for duplicate deliveries running at the same time."""

    def _run_concurrently(self, orchestrator, request, workers: int = 8) -> list[BaseException]:
        barrier = threading.Barrier(workers)
        errors: list[BaseException] = []

        def worker():
            barrier.wait()
            try:
                orchestrator.handle(request)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return errors

    def test_concurrent_create_secret(self, orchestrator, store):
        """Test concurrent createSecret calls keep exactly one PENDING password."""
        errors = self._run_concurrently(
            orchestrator, RotationRequest("s1", "v2", RotationStep.CREATE_SECRET)
        )

        assert errors == []
        assert store.version_ids("s1") == ["v1", "v2"]
        assert store.describe_stages("s1")["v2"] == [PENDING]

    def test_concurrent_finish_secret(self, orchestrator, store):
        """Test concurrent finishSecret calls promote exactly once."""
        for step in (RotationStep.CREATE_SECRET, RotationStep.SET_SECRET, RotationStep.TEST_SECRET):
            orchestrator.handle(RotationRequest("s1", "v2", step))

        errors = self._run_concurrently(
            orchestrator, RotationRequest("s1", "v2", RotationStep.FINISH_SECRET)
        )

        assert errors == []
        stages = store.describe_stages("s1")
        assert CURRENT in stages["v2"]
        assert stages["v1"] == [PREVIOUS]
        assert_single_holders(store)

    def test_concurrent_set_secret(self, orchestrator, store, fake_db):
        """Test two setSecret calls that both pass the login check succeed."""
        orchestrator.handle(RotationRequest("s1", "v2", RotationStep.CREATE_SECRET))
        check_login = orchestrator.verifier.can_authenticate
        barrier = threading.Barrier(2)
        seen = threading.local()

        def check_then_wait(record):
            result = check_login(record)
            if not getattr(seen, "waited", False):
                seen.waited = True
                barrier.wait(timeout=10)
            return result

        orchestrator.verifier.can_authenticate = check_then_wait

        errors = self._run_concurrently(
            orchestrator, RotationRequest("s1", "v2", RotationStep.SET_SECRET), workers=2
        )

        assert errors == []
        assert fake_db.users["svc"] == store.read_version("s1", PENDING, "v2").record.password
