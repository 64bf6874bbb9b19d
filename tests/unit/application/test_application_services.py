"""
Unit tests for the application services wired to in-memory repositories.
"""

from datetime import timedelta

import pytest

from cloudvault.application.rate_limit_service import RateLimitService
from cloudvault.application.reconciliation_service import ReconciliationService
from cloudvault.application.share_service import ShareService
from cloudvault.application.storage_service import StorageService
from cloudvault.config.rate_limit_config import RateLimitConfig
from cloudvault.domain.errors import ErrorCategory, RateLimitExceededError
from cloudvault.domain.file_storage.value_objects import owner_segment
from cloudvault.domain.rate_limiting import RateLimitManager
from tests.conftest import FREE_FILE, FREE_TOTAL, OTHER_OWNER, OWNER
from tests.fixtures.domain_fixtures import complete_upload
from tests.fixtures.mock_repositories import MockRateLimitRepository


@pytest.fixture
def storage_service(coordinator, organizer):
    return StorageService(coordinator, organizer)


@pytest.fixture
def share_service(issuer, coordinator, clock):
    return ShareService(issuer, coordinator, clock=clock)


class TestStorageService:
    """Test owner-facing file use cases."""

    def test_request_upload_is_created(self, storage_service):
        result = storage_service.request_upload(OWNER, "cv.pdf", "application/pdf", 100)

        assert result.success
        assert result.status_code == 201
        assert result.data["upload"]["method"] == "PUT"
        assert result.data["object_key"].startswith(f"users/{owner_segment(OWNER)}/")
        assert result.data["max_bytes"] == FREE_FILE

    def test_request_upload_over_file_cap(self, storage_service):
        result = storage_service.request_upload(OWNER, "big.iso", None, FREE_FILE + 1)

        assert not result.success
        assert result.error_category is ErrorCategory.FILE_TOO_LARGE
        assert result.status_code == 413

    def test_request_upload_rejects_non_integer_size(self, storage_service):
        result = storage_service.request_upload(OWNER, "x", None, "12")
        assert result.status_code == 400

    def test_confirm_returns_file_and_usage(self, storage_service, blob_store):
        ticket = storage_service.request_upload(OWNER, "cv.pdf", None, 100).data
        blob_store.simulate_upload(ticket["object_key"], 100)

        result = storage_service.confirm_upload(OWNER, ticket["object_key"], 100, file_name="cv.pdf")

        assert result.success
        assert result.data["file"]["size_bytes"] == 100
        assert result.data["usage"]["used_bytes"] == 100
        assert result.data["usage"]["remaining_bytes"] == FREE_TOTAL - 100

    def test_confirm_without_upload(self, storage_service):
        key = storage_service.request_upload(OWNER, "cv.pdf", None, 100).data["object_key"]
        result = storage_service.confirm_upload(OWNER, key, 100)
        assert result.error_category is ErrorCategory.UPLOAD_NOT_FOUND

    def test_download_and_delete(self, storage_service, coordinator, blob_store):
        record = complete_upload(coordinator, blob_store, OWNER, 50)

        download = storage_service.request_download(OWNER, record.id)
        assert download.data["download"]["method"] == "GET"

        deleted = storage_service.delete_file(OWNER, record.id)
        assert deleted.data == {"deleted": record.id, "usage": coordinator.usage_summary(OWNER)}
        assert deleted.data["usage"]["used_bytes"] == 0

    def test_other_owner_cannot_delete(self, storage_service, coordinator, blob_store):
        record = complete_upload(coordinator, blob_store, OWNER, 50)
        assert storage_service.delete_file(OTHER_OWNER, record.id).status_code == 403

    def test_get_usage(self, storage_service):
        usage = storage_service.get_usage(OWNER).data
        assert usage == {
            "tier": "free",
            "used_bytes": 0,
            "limit_bytes": FREE_TOTAL,
            "remaining_bytes": FREE_TOTAL,
            "max_file_bytes": FREE_FILE,
            "percent_used": 0.0,
        }

    def test_update_file_renames_and_moves(self, storage_service, coordinator, blob_store):
        record = complete_upload(coordinator, blob_store, OWNER, 50)
        folder = storage_service.create_folder(OWNER, "Docs").data

        result = storage_service.update_file(OWNER, record.id, {"name": "cv-final.pdf", "folder_id": folder["id"]})

        assert result.data["name"] == "cv-final.pdf"
        assert result.data["folder_id"] == folder["id"]

        moved_back = storage_service.update_file(OWNER, record.id, {"folder_id": None})
        assert moved_back.data["folder_id"] is None

    def test_update_unknown_file(self, storage_service):
        assert storage_service.update_file(OWNER, "missing", {"name": "x"}).status_code == 404

    def test_list_files_with_params(self, storage_service, coordinator, blob_store):
        complete_upload(coordinator, blob_store, OWNER, 10, "a.txt", "text/plain")
        complete_upload(coordinator, blob_store, OWNER, 20, "b.png", "image/png")

        listing = storage_service.list_files(OWNER, content_type="text/plain")
        assert listing.data["count"] == 1
        assert listing.data["files"][0]["name"] == "a.txt"

        types = storage_service.list_content_types(OWNER).data
        assert types == {"content_types": ["image/png", "text/plain"]}

    def test_list_files_bad_sort(self, storage_service):
        assert storage_service.list_files(OWNER, sort_by="colour").status_code == 400

    def test_folder_lifecycle(self, storage_service):
        created = storage_service.create_folder(OWNER, "Music")
        assert created.status_code == 201

        folder_id = created.data["id"]
        assert storage_service.rename_folder(OWNER, folder_id, "Audio").data["name"] == "Audio"
        assert [f["name"] for f in storage_service.list_folders(OWNER).data["folders"]] == ["Audio"]
        assert storage_service.delete_folder(OWNER, folder_id).data == {"deleted": folder_id}
        assert storage_service.delete_folder(OWNER, folder_id).status_code == 404


class TestShareService:
    """Test share management and anonymous resolution."""

    def test_create_list_extend_revoke(self, share_service, coordinator, blob_store):
        record = complete_upload(coordinator, blob_store, OWNER, 50)

        created = share_service.create_share(OWNER, record.id, "1h")
        assert created.status_code == 201
        assert created.data["state"] == "active"

        share_id = created.data["id"]
        assert share_service.extend_share(OWNER, share_id, "7d").data["policy"] == "7d"
        assert share_service.revoke_share(OWNER, share_id).data["state"] == "revoked"
        assert [s["state"] for s in share_service.list_shares(OWNER).data["shares"]] == ["revoked"]

    def test_resolve_returns_file_details_and_download(self, share_service, coordinator, blob_store):
        record = complete_upload(coordinator, blob_store, OWNER, 50, "deck.pdf")
        token = share_service.create_share(OWNER, record.id, "never").data["token"]

        result = share_service.resolve_share(token)

        assert result.success
        assert result.data["file"] == {
            "name": "deck.pdf",
            "size_bytes": 50,
            "content_type": "application/pdf",
        }
        assert result.data["share_expires_at"] is None
        assert result.data["download"]["url"].endswith("?method=GET")
        assert "owner_id" not in result.data["file"]

    @pytest.mark.parametrize("advance,status,category", [
        ({"hours": 2}, 410, ErrorCategory.SHARE_EXPIRED),
        ({}, 200, None),
    ])
    def test_resolve_expiry(self, share_service, coordinator, blob_store, clock, advance, status, category):
        record = complete_upload(coordinator, blob_store, OWNER, 50)
        token = share_service.create_share(OWNER, record.id, "1h").data["token"]
        clock.advance(**advance)

        result = share_service.resolve_share(token)

        assert result.status_code == status
        assert result.error_category is category

    def test_resolve_unknown_token(self, share_service):
        assert share_service.resolve_share("nope").status_code == 404

    def test_extend_with_unknown_policy(self, share_service, coordinator, blob_store):
        record = complete_upload(coordinator, blob_store, OWNER, 50)
        share_id = share_service.create_share(OWNER, record.id, "1h").data["id"]
        assert share_service.extend_share(OWNER, share_id, "forever").status_code == 400


class TestRateLimitService:
    """Test share resolution limits."""

    @pytest.fixture
    def repository(self, clock):
        return MockRateLimitRepository(clock)

    def _service(self, repository, clock, **config):
        return RateLimitService(RateLimitManager(repository, clock=clock), RateLimitConfig(**config))

    def test_limits_follow_config(self, repository, clock):
        service = self._service(repository, clock, share_resolve_per_minute=5, share_resolve_hourly=50)
        limits = service.share_resolve_limits()

        assert [(limit.limit, limit.window_seconds) for limit in limits] == [(5, 60), (50, 3600)]

    def test_burst_limit_enforced(self, repository, clock):
        service = self._service(repository, clock, share_resolve_per_minute=2)
        service.check_share_resolve_limits("10.0.0.1")
        service.check_share_resolve_limits("10.0.0.1")

        with pytest.raises(RateLimitExceededError):
            service.check_share_resolve_limits("10.0.0.1")

    def test_disabled_service_counts_nothing(self, repository, clock):
        service = self._service(repository, clock, enabled=False, share_resolve_per_minute=1)
        for _ in range(3):
            assert service.check_share_resolve_limits("10.0.0.1") == []

    def test_invalid_ip(self, repository, clock):
        with pytest.raises(ValueError):
            self._service(repository, clock).check_share_resolve_limits("unknown")

    def test_most_restrictive_entity(self, repository, clock):
        service = self._service(repository, clock, share_resolve_per_minute=3, share_resolve_hourly=100)
        entities = service.check_share_resolve_limits("10.0.0.1")

        assert service.get_most_restrictive_entity(entities).limit_type == "share_resolve_per_minute"
        with pytest.raises(ValueError):
            service.get_most_restrictive_entity([])


class TestReconciliationService:
    """Test the periodic ledger and orphan sweeps."""

    @pytest.fixture
    def service(self, coordinator, catalog, bindings, clock):
        return ReconciliationService(coordinator, catalog, bindings, orphan_age=timedelta(minutes=10), clock=clock)

    def test_corrects_drifted_ledgers_only(self, service, coordinator, blob_store, catalog):
        complete_upload(coordinator, blob_store, OWNER, 70)
        complete_upload(coordinator, blob_store, OTHER_OWNER, 30)
        catalog.set_usage(OWNER, 999)

        summary = service.reconcile_all()

        assert summary["checked"] == 2
        assert summary["corrected"] == {OWNER: {"previous": 999, "recomputed": 70}}
        assert summary["failed"] == []
        assert catalog.get_usage(OWNER) == 70

    def test_owner_failure_does_not_stop_sweep(self, service, coordinator, blob_store, catalog):
        complete_upload(coordinator, blob_store, OWNER, 70)
        complete_upload(coordinator, blob_store, OTHER_OWNER, 30)
        catalog.fail_writes = True

        summary = service.reconcile_all()

        assert sorted(summary["failed"]) == [OTHER_OWNER, OWNER]

    def test_reports_old_unreferenced_objects(self, service, coordinator, provisioner, blob_store, clock):
        complete_upload(coordinator, blob_store, OWNER, 70)
        namespace = provisioner.namespace_name(OWNER)
        prefix = f"users/{owner_segment(OWNER)}/"
        blob_store.put_object(namespace, prefix + "abandoned.bin", 12, updated_at=clock() - timedelta(hours=1))
        blob_store.put_object(namespace, prefix + "in-flight.bin", 5, updated_at=clock())

        summary = service.report_orphans()

        assert summary["orphans"] == {OWNER: [prefix + "abandoned.bin"]}
        assert summary["orphan_count"] == 1
        assert (namespace, prefix + "abandoned.bin") in blob_store.objects

    def test_backend_failure_is_reported(self, service, coordinator, blob_store):
        complete_upload(coordinator, blob_store, OWNER, 70)
        blob_store.fail_times["list_objects"] = 10

        summary = service.report_orphans()

        assert summary["failed"] == [OWNER]
        assert summary["orphan_count"] == 0
