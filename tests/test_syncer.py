"""Tests for the sync orchestration."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from assetsync.config_validator import AssetSyncConfig, S3Config
from assetsync.exceptions import BucketNotFoundError, TransferError
from assetsync.file_utils import LocalFilesystem, LocalInventory
from assetsync.syncer import SyncState, Syncer

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)
DIGEST = "d41d8cd98f00b204e9800998ecf8427e"


class FakeStorage:
    def __init__(self, keys=(), fail_on=(), missing=False, interrupt=False):
        self.keys = set(keys)
        self.fail_on = set(fail_on)
        self.missing = missing
        self.interrupt = interrupt
        self.writes = {}
        self.events = []
        self.lock = threading.Lock()

    def list_keys(self):
        self.events.append(("list", None))
        if self.missing:
            raise BucketNotFoundError("assets-bucket")
        return set(self.keys)

    def write(self, plan, body, size):
        if self.interrupt:
            raise KeyboardInterrupt
        if plan.key in self.fail_on:
            raise TransferError("upload", plan.key, "SlowDown")
        data = body.read()
        assert len(data) == size
        with self.lock:
            self.writes[plan.key] = (plan, data)
            self.keys.add(plan.key)
            self.events.append(("write", plan.key))

    def delete(self, key):
        with self.lock:
            self.keys.discard(key)
            self.events.append(("delete", key))

    @property
    def list_calls(self):
        return sum(1 for event, _ in self.events if event == "list")


class FakeInvalidator:
    def __init__(self):
        self.calls = []

    def invalidate(self, distribution_id, paths):
        self.calls.append((distribution_id, list(paths)))
        return "I2J0I21PCUYOIK"


def _write(root, asset, content=b"x"):
    path = root.joinpath(*asset.split("/"))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def _syncer(tmp_path, storage, invalidator=None, workers=1, **overrides):
    config = AssetSyncConfig(
        s3=S3Config(bucket_name="assets-bucket", upload_workers=workers),
        public_path=str(tmp_path),
        **overrides,
    )
    filesystem = LocalFilesystem(str(tmp_path))
    inventory = LocalInventory(filesystem, config)
    return Syncer(
        config, storage, inventory, filesystem, invalidator=invalidator, clock=lambda: NOW
    )


def test_uploads_new_files_and_alias_once(tmp_path):
    _write(tmp_path, "assets/css/app.css", b"plain")
    _write(tmp_path, "assets/css/app-abc123.css", b"fingerprinted")
    storage = FakeStorage()

    result = _syncer(tmp_path, storage).sync()

    assert sorted(result.uploaded) == ["assets/css/app-abc123.css", "assets/css/app.css"]
    assert len(result.uploaded) == 2
    assert storage.writes["assets/css/app.css"][1] == b"plain"
    assert result.state is SyncState.DONE


def test_skips_files_already_in_bucket(tmp_path):
    _write(tmp_path, "assets/a.js")
    _write(tmp_path, "assets/b.js")
    storage = FakeStorage(keys={"assets/a.js"})

    result = _syncer(tmp_path, storage).sync()

    assert result.uploaded == ["assets/b.js"]


def test_always_upload_rewrites_remote_file(tmp_path):
    _write(tmp_path, "assets/index.html", b"<html>")
    storage = FakeStorage(keys={"assets/index.html"})

    result = _syncer(tmp_path, storage, always_upload=["index.html"]).sync()

    assert result.uploaded == ["assets/index.html"]


def test_delete_policy_removes_extra_remote_files(tmp_path):
    _write(tmp_path, "assets/a.js")
    storage = FakeStorage(keys={"assets/a.js", "assets/b.js"})

    result = _syncer(tmp_path, storage, existing_remote_files="delete").sync()

    assert result.uploaded == []
    assert result.deleted == ["assets/b.js"]
    assert storage.keys == {"assets/a.js"}
    # Remote files are listed again before deleting
    assert storage.list_calls == 2


def test_delete_policy_protects_ignored_and_always_upload_files(tmp_path):
    _write(tmp_path, "assets/a.js")
    storage = FakeStorage(keys={"assets/a.js", "assets/keep.txt", "assets/boot.js", "assets/old.js"})

    result = _syncer(
        tmp_path,
        storage,
        existing_remote_files="delete",
        ignored_files=["keep.txt"],
        always_upload=["boot.js"],
    ).sync()

    assert result.deleted == ["assets/old.js"]


def test_keep_policy_never_deletes(tmp_path):
    _write(tmp_path, "assets/a.js")
    stale = {f"assets/stale-{i}.js" for i in range(50)}
    storage = FakeStorage(keys=stale)

    result = _syncer(tmp_path, storage, existing_remote_files="keep").sync()

    assert result.deleted == []
    assert stale <= storage.keys
    assert storage.list_calls == 1


def test_ignore_policy_uploads_everything_without_listing(tmp_path):
    _write(tmp_path, "assets/a.js")
    storage = FakeStorage(keys={"assets/a.js", "assets/b.js"})

    result = _syncer(tmp_path, storage, existing_remote_files="ignore").sync()

    assert result.uploaded == ["assets/a.js"]
    assert result.deleted == []
    assert storage.list_calls == 0


def test_missing_bucket_aborts_before_any_upload(tmp_path):
    _write(tmp_path, "assets/a.js")
    storage = FakeStorage(missing=True)
    syncer = _syncer(tmp_path, storage, existing_remote_files="delete")

    with pytest.raises(BucketNotFoundError):
        syncer.sync()

    assert storage.writes == {}
    assert syncer.state is SyncState.UPLOADING


def test_failed_upload_aborts_before_deletion(tmp_path):
    _write(tmp_path, "assets/a.js")
    _write(tmp_path, "assets/b.js")
    storage = FakeStorage(keys={"assets/old.js"}, fail_on={"assets/a.js"})
    syncer = _syncer(tmp_path, storage, existing_remote_files="delete")

    with pytest.raises(TransferError):
        syncer.sync()

    assert not any(event == "delete" for event, _ in storage.events)
    assert syncer.state is SyncState.UPLOADING


def test_interrupt_propagates(tmp_path):
    _write(tmp_path, "assets/a.js")
    storage = FakeStorage(interrupt=True)

    with pytest.raises(KeyboardInterrupt):
        _syncer(tmp_path, storage).sync()


def test_directories_are_not_uploaded(tmp_path):
    _write(tmp_path, "assets/images/logo.png")
    storage = FakeStorage()

    result = _syncer(tmp_path, storage).sync()

    assert result.uploaded == ["assets/images/logo.png"]


def test_gzip_mode_uploads_smaller_twin_under_plain_key(tmp_path):
    _write(tmp_path, "assets/app.css", b"a" * 1000)
    _write(tmp_path, "assets/app.css.gz", b"z" * 400)
    storage = FakeStorage()

    result = _syncer(tmp_path, storage, gzip_compression=True).sync()

    assert result.uploaded == ["assets/app.css"]
    assert result.skipped == ["assets/app.css.gz"]
    plan, data = storage.writes["assets/app.css"]
    assert data == b"z" * 400
    assert plan.headers["content_encoding"] == "gzip"
    assert plan.headers["content_type"] == "text/css"


def test_gzip_mode_keeps_plain_file_when_twin_is_larger(tmp_path):
    _write(tmp_path, "assets/tiny.css", b"a")
    _write(tmp_path, "assets/tiny.css.gz", b"z" * 30)
    storage = FakeStorage()

    _syncer(tmp_path, storage, gzip_compression=True).sync()

    plan, data = storage.writes["assets/tiny.css"]
    assert data == b"a"
    assert "content_encoding" not in plan.headers
    assert "assets/tiny.css.gz" not in storage.writes


def test_plain_mode_uploads_gzip_files_under_their_own_key(tmp_path):
    _write(tmp_path, "assets/app.css", b"a" * 1000)
    _write(tmp_path, "assets/app.css.gz", b"z" * 400)
    storage = FakeStorage()

    _syncer(tmp_path, storage).sync()

    assert storage.writes["assets/app.css"][1] == b"a" * 1000
    gz_plan, gz_data = storage.writes["assets/app.css.gz"]
    assert gz_data == b"z" * 400
    assert gz_plan.headers["content_encoding"] == "gzip"


def test_digest_assets_get_far_future_headers(tmp_path):
    _write(tmp_path, f"assets/app-{DIGEST}.css")
    storage = FakeStorage()

    _syncer(tmp_path, storage).sync()

    plan, _ = storage.writes[f"assets/app-{DIGEST}.css"]
    assert plan.headers["cache_control"] == "public, max-age=31557600"
    assert plan.headers["expires"] == NOW + timedelta(seconds=31557600)
    # The alias is not present locally, so only the digest file is written
    assert list(storage.writes) == [f"assets/app-{DIGEST}.css"]


def test_invalidates_configured_paths(tmp_path):
    _write(tmp_path, "assets/a.js")
    invalidator = FakeInvalidator()

    result = _syncer(
        tmp_path,
        FakeStorage(),
        invalidator=invalidator,
        cdn_distribution_id="E2QWRUHAPOMQZL",
        invalidate=["index.html", "js/app.js"],
    ).sync()

    assert invalidator.calls == [
        ("E2QWRUHAPOMQZL", ["/assets/index.html", "/assets/js/app.js"])
    ]
    assert result.invalidation_id == "I2J0I21PCUYOIK"


def test_invalidation_skipped_without_distribution_or_paths(tmp_path):
    _write(tmp_path, "assets/a.js")
    invalidator = FakeInvalidator()

    _syncer(tmp_path, FakeStorage(), invalidator=invalidator, invalidate=["index.html"]).sync()
    _syncer(tmp_path, FakeStorage(), invalidator=invalidator, cdn_distribution_id="E2Q").sync()

    assert invalidator.calls == []


def test_empty_sync_reaches_done(tmp_path):
    storage = FakeStorage()

    result = _syncer(tmp_path, storage, existing_remote_files="delete").sync()

    assert result.uploaded == [] and result.deleted == []
    assert result.state is SyncState.DONE


def test_parallel_upload_finishes_before_deletion(tmp_path):
    for i in range(20):
        _write(tmp_path, f"assets/file-{i}.txt", b"data")
    storage = FakeStorage(keys={"assets/old-1.txt", "assets/old-2.txt"})

    result = _syncer(tmp_path, storage, workers=4, existing_remote_files="delete").sync()

    assert len(result.uploaded) == 20
    assert sorted(result.deleted) == ["assets/old-1.txt", "assets/old-2.txt"]
    kinds = [event for event, _ in storage.events if event != "list"]
    assert kinds == ["write"] * 20 + ["delete"] * 2


def test_parallel_upload_failure_propagates(tmp_path):
    for i in range(10):
        _write(tmp_path, f"assets/file-{i}.txt", b"data")
    storage = FakeStorage(keys={"assets/old.txt"}, fail_on={"assets/file-3.txt"})

    with pytest.raises(TransferError):
        _syncer(tmp_path, storage, workers=4, existing_remote_files="delete").sync()

    assert not any(event == "delete" for event, _ in storage.events)


def test_preview_changes_nothing(tmp_path):
    _write(tmp_path, "assets/a.js")
    _write(tmp_path, "assets/b.js")
    storage = FakeStorage(keys={"assets/a.js", "assets/gone.js"})

    uploads, deletions = _syncer(tmp_path, storage, existing_remote_files="delete").preview()

    assert uploads == ["assets/b.js"]
    assert deletions == {"assets/gone.js"}
    assert storage.writes == {}
    assert not any(event == "delete" for event, _ in storage.events)
