"""
End-to-end synchronisation of the local asset tree with the bucket.

A sync pass moves strictly through Idle -> Uploading -> Deleting ->
Invalidating -> Done. Uploads and deletions may be spread over a thread pool,
but deletion never starts before every upload has finished, and the first
failure aborts the pass.
"""

import concurrent.futures
import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set, Tuple

from .compression import gzip_name, is_gzip_variant, select_variant
from .logger import log_progress_grouped, logger
from .metadata import MetadataResolver, UploadPlan, utc_now
from .reconciler import Reconciler


class SyncState(Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    DELETING = "deleting"
    INVALIDATING = "invalidating"
    DONE = "done"


@dataclass
class SyncResult:
    """What a sync pass changed remotely."""

    uploaded: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    invalidation_id: Optional[str] = None
    state: SyncState = SyncState.IDLE


class Syncer:
    """Uploads, prunes and invalidates assets using injected collaborators."""

    def __init__(
        self,
        config,
        storage,
        inventory,
        filesystem,
        invalidator=None,
        log=None,
        clock=utc_now,
    ):
        self.config = config
        self.storage = storage
        self.inventory = inventory
        self.filesystem = filesystem
        self.invalidator = invalidator
        self.log = log or logger
        self.reconciler = Reconciler(config, self.log)
        self.metadata = MetadataResolver(config, self.log, clock)
        self.workers = config.s3.upload_workers
        self.state = SyncState.IDLE

    def _enter(self, state: SyncState, result: SyncResult):
        self.log.debug(f"Sync state: {self.state.value} -> {state.value}")
        self.state = state
        result.state = state

    def sync(self) -> SyncResult:
        """Run one complete pass and report what was done."""
        self.log.info("AssetSync: Syncing...")
        result = SyncResult()
        local_files = self.inventory.list_files()

        self._enter(SyncState.UPLOADING, result)
        self.upload_files(local_files, result)

        self._enter(SyncState.DELETING, result)
        self.delete_extra_remote_files(local_files, result)

        self._enter(SyncState.INVALIDATING, result)
        self.invalidate_files(result)

        self._enter(SyncState.DONE, result)
        self.log.info("AssetSync: Done.")
        return result

    def preview(self) -> Tuple[List[str], Set[str]]:
        """Upload and deletion sets of a pass, without touching the bucket."""
        local_files = self.inventory.list_files()
        remote_files = self.remote_files_for_upload()
        uploads = [f for f in self.reconciler.upload_set(local_files, remote_files)
                   if self.filesystem.is_file(f)]
        if self.config.keep_existing_remote_files:
            return uploads, set()
        return uploads, self.reconciler.deletion_set(self.storage.list_keys(), local_files)

    def remote_files_for_upload(self):
        if self.config.ignore_existing_remote_files:
            return set()
        # A missing bucket raises here, before anything is written
        return self.storage.list_keys()

    def upload_files(self, local_files, result: SyncResult):
        files = self.reconciler.upload_set(local_files, self.remote_files_for_upload())
        # Only files; directory entries may come from the directory walk
        files = [f for f in files if self.filesystem.is_file(f)]
        if not files:
            return

        self.log.info("AssetSync: Uploading files...")
        for plan in self._run(self.upload_file, files, "Uploaded"):
            if plan.skip:
                result.skipped.append(plan.asset)
            else:
                result.uploaded.append(plan.key)
        self.log.info("AssetSync: Uploading finished")

    def upload_file(self, asset: str) -> UploadPlan:
        """Write a single asset, choosing its gzip variant when configured."""
        gzip_compression = self.config.gzip_compression
        original_size = gzipped_size = None
        if gzip_compression and not is_gzip_variant(asset):
            gz_file_name = gzip_name(asset)
            if self.filesystem.exists(gz_file_name):
                original_size = self.filesystem.size(asset)
                gzipped_size = self.filesystem.size(gz_file_name)

        choice = select_variant(asset, gzip_compression, original_size, gzipped_size)
        if choice.skip:
            # The plain file is uploaded in place of this one
            self.log.info(f"Ignoring {asset}")
            return UploadPlan(asset=asset, key=choice.key, source=choice.source, skip=True)

        if choice.savings is None:
            self.log.info(f"Uploading {choice.key}")
        elif choice.content_encoding:
            self.log.info(
                f"Uploading {choice.source} in place of {choice.key}, saving {choice.savings}%"
            )
        else:
            increase = -float(choice.savings)
            self.log.info(
                f"Uploading {choice.key} instead of {gzip_name(choice.key)} because "
                f"compression increases the file size by {increase:.2f}%"
            )

        plan = self.metadata.plan(asset, choice)
        self.log.debug(f"Upload plan: {plan}")

        size = self.filesystem.size(plan.source)
        with self.filesystem.open(plan.source) as body:
            self.storage.write(plan, body, size)
        return plan

    def delete_extra_remote_files(self, local_files, result: SyncResult):
        if self.config.keep_existing_remote_files:
            self.log.debug("Keeping existing remote files")
            return

        self.log.info("Fetching files to flag for delete")
        # Fresh listing, the uploads above changed the bucket
        remote_files = self.storage.list_keys()
        to_delete = sorted(self.reconciler.deletion_set(remote_files, local_files))

        self.log.info(f"Flagging {len(to_delete)} file(s) for deletion")
        if to_delete:
            result.deleted.extend(self._run(self.delete_file, to_delete, "Deleted"))

    def delete_file(self, key: str) -> str:
        self.log.info(f"Deleting: {key}")
        self.storage.delete(key)
        return key

    def files_to_invalidate(self) -> List[str]:
        return [posixpath.join("/", self.config.assets_prefix, f) for f in self.config.invalidate]

    def invalidate_files(self, result: SyncResult):
        distribution_id = self.config.cdn_distribution_id
        paths = self.files_to_invalidate()
        if not distribution_id or not paths:
            return
        if self.invalidator is None:
            self.log.warning("CDN distribution configured without an invalidation client, skipping")
            return

        self.log.info("Invalidating Files")
        result.invalidation_id = self.invalidator.invalidate(distribution_id, paths)
        self.log.info(f"Invalidation id: {result.invalidation_id}")

    def _run(self, action, items, description):
        """Apply action to every item, in parallel when more than one worker is set."""
        results = []
        total = len(items)
        last_logged_percentage = None

        if self.workers <= 1 or total <= 1:
            for i, item in enumerate(items, 1):
                results.append(action(item))
                last_logged_percentage = log_progress_grouped(
                    (i / total) * 100, i, total, description, last_logged_percentage, log=self.log
                )
            return results

        with concurrent.futures.ThreadPoolExecutor(max_workers=min(self.workers, total)) as executor:
            futures = [executor.submit(action, item) for item in items]
            try:
                for i, future in enumerate(concurrent.futures.as_completed(futures), 1):
                    results.append(future.result())
                    last_logged_percentage = log_progress_grouped(
                        (i / total) * 100, i, total, description, last_logged_percentage, log=self.log
                    )
            except BaseException:
                # Stop work that has not started yet; the failure is re-raised
                for future in futures:
                    future.cancel()
                raise
        return results
