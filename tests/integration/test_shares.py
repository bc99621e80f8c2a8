"""Integration tests for shares on a real database.

Includes the concurrent view counting test: many callers that all passed
validation race to log their view, and the quota must still hold.
"""
import threading
from datetime import datetime, timedelta, timezone

import pytest

from app.application.services import ShareService
from app.database import connect
from app.domain.errors import (
    ForbiddenError,
    NotFoundError,
    QuotaExceededError,
    ShareExpiredError,
)
from app.infrastructure.repositories import ShareRepository


@pytest.fixture
def share_repo(db):
    return ShareRepository(db)


@pytest.fixture
def service(share_repo):
    return ShareService(share_repository=share_repo)


class TestShareLifecycle:

    def test_create_and_fetch(self, service, test_user):
        share = service.create_share("file", 42, test_user["id"], max_views=3)
        fetched = service.get_share(share["id"])

        assert fetched["view_count"] == 0
        assert fetched["max_views"] == 3
        assert fetched["enabled"] is True
        assert fetched["requires_auth"] is False
        assert fetched["created_at"].tzinfo is not None

    def test_list_by_owner(self, service, test_user, second_user):
        service.create_share("file", 1, test_user["id"])
        service.create_share("album", 2, test_user["id"])
        service.create_share("file", 3, second_user["id"])

        assert len(service.list_shares_by_owner(test_user["id"])) == 2

    def test_delete_cascades(self, service, share_repo, test_user, second_user):
        share = service.create_share("file", 42, test_user["id"], access_type="private")
        service.grant_share_permission(share["id"], second_user["id"])
        service.log_access(share["id"], None, "127.0.0.1", "pytest")

        service.delete_share(share["id"])

        assert share_repo.list_permissions(share["id"]) == []
        assert share_repo.get_access_log(share["id"], 10) == []
        with pytest.raises(NotFoundError):
            service.delete_share(share["id"])

    def test_delete_expired_shares(self, service, test_user):
        now = datetime.now(timezone.utc)
        stale = service.create_share("file", 1, test_user["id"], expires_at=now - timedelta(hours=1))
        live = service.create_share("file", 2, test_user["id"], expires_at=now + timedelta(hours=1))
        forever = service.create_share("file", 3, test_user["id"])

        assert service.delete_expired_shares() == 1

        with pytest.raises(NotFoundError):
            service.get_share(stale["id"])
        service.get_share(live["id"])
        service.get_share(forever["id"])

    def test_extend_stacks_on_live_deadline(self, service, test_user):
        deadline = datetime.now(timezone.utc) + timedelta(hours=2)
        share = service.create_share("file", 1, test_user["id"], expires_at=deadline)

        extended = service.extend_share(share["id"], timedelta(hours=24))

        assert extended["expires_at"] == deadline + timedelta(hours=24)

    def test_extend_revives_expired_share(self, service, test_user):
        share = service.create_share(
            "file", 1, test_user["id"],
            expires_at=datetime.now(timezone.utc) - timedelta(days=2)
        )
        with pytest.raises(ShareExpiredError):
            service.validate_access(share["id"])

        before = datetime.now(timezone.utc)
        extended = service.extend_share(share["id"], timedelta(hours=1))

        assert extended["expires_at"] >= before + timedelta(hours=1)
        service.validate_access(share["id"])

    def test_update_password_and_clear_it(self, service, test_user):
        share = service.create_share("file", 1, test_user["id"])
        updated = service.update_share(share["id"], password="s3cret")
        assert updated["password_hash"]

        cleared = service.update_share(share["id"], password="")
        assert cleared["password_hash"] is None
        service.validate_access(share["id"], password="")


class TestAllowList:

    def test_grant_flips_access(self, service, test_user, second_user):
        share = service.create_share("file", 42, test_user["id"], access_type="private")

        with pytest.raises(ForbiddenError):
            service.validate_access(share["id"], caller_user_id=second_user["id"])

        service.grant_share_permission(share["id"], second_user["id"])
        service.grant_share_permission(share["id"], second_user["id"])
        service.validate_access(share["id"], caller_user_id=second_user["id"])
        assert len(service.list_share_permissions(share["id"])) == 1

        service.revoke_share_permission(share["id"], second_user["id"])
        service.revoke_share_permission(share["id"], second_user["id"])
        with pytest.raises(ForbiddenError):
            service.validate_access(share["id"], caller_user_id=second_user["id"])


class TestViewCounting:

    def test_log_access_counts_and_records(self, service, test_user, second_user):
        share = service.create_share("file", 42, test_user["id"])

        service.log_access(share["id"], None, "10.0.0.5", "curl/8.0")
        service.log_access(share["id"], second_user["id"], "10.0.0.6", "Firefox")

        assert service.get_share(share["id"])["view_count"] == 2
        log = service.get_access_log(share["id"])
        assert {entry["accessed_by"] for entry in log} == {None, second_user["id"]}
        assert len(service.get_access_log(share["id"], limit=1)) == 1

    def test_quota_stops_counting(self, service, share_repo, test_user):
        share = service.create_share("file", 42, test_user["id"], max_views=2)

        service.log_access(share["id"], None, "", "")
        service.log_access(share["id"], None, "", "")
        with pytest.raises(QuotaExceededError):
            service.log_access(share["id"], None, "", "")
        with pytest.raises(QuotaExceededError):
            service.validate_access(share["id"])

        assert service.get_share(share["id"])["view_count"] == 2
        assert len(share_repo.get_access_log(share["id"], 100)) == 2

    def test_view_counted_when_log_write_fails(self, db, service, share_repo, test_user):
        share = service.create_share("file", 42, test_user["id"], max_views=1)
        db.execute(
            """CREATE TRIGGER reject_access_log BEFORE INSERT ON share_access_log
               BEGIN SELECT RAISE(ABORT, 'access log unavailable'); END"""
        )
        db.commit()

        service.log_access(share["id"], test_user["id"], "10.0.0.5", "curl/8.0")

        assert service.get_share(share["id"])["view_count"] == 1
        assert share_repo.get_access_log(share["id"], 10) == []
        with pytest.raises(QuotaExceededError):
            service.log_access(share["id"], test_user["id"], "10.0.0.5", "curl/8.0")

    def test_unknown_user_logged_as_anonymous(self, service, share_repo, test_user):
        share = service.create_share("file", 42, test_user["id"])

        service.log_access(share["id"], 9999, "10.0.0.5", "curl/8.0")

        assert [e["accessed_by"] for e in share_repo.get_access_log(share["id"], 10)] == [None]

    def test_concurrent_views_never_exceed_quota(self, service, fresh_database, test_user):
        share = service.create_share("file", 42, test_user["id"], max_views=5)
        share_id = share["id"]
        callers = 20

        barrier = threading.Barrier(callers)
        results = []
        results_lock = threading.Lock()

        def open_share():
            conn = connect(fresh_database)
            try:
                worker = ShareService(ShareRepository(conn))
                worker.validate_access(share_id)
                barrier.wait()
                try:
                    worker.log_access(share_id, None, "10.0.0.1", "load-test")
                    outcome = "served"
                except QuotaExceededError:
                    outcome = "quota"
            finally:
                conn.close()
            with results_lock:
                results.append(outcome)

        threads = [threading.Thread(target=open_share) for _ in range(callers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count("served") == 5
        assert results.count("quota") == callers - 5
        final = service.get_share(share_id)
        assert final["view_count"] == 5
        assert len(service.get_access_log(share_id)) == 5
