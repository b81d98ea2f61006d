"""
Repair pass for the two non-atomic document flows.

  * orphaned blob — a stored file no document row points at (upload whose
    metadata insert failed).  The file is removed.
  * dangling row  — a document row whose file is gone (delete whose row
    removal failed).  The row is removed.

Files younger than ORPHAN_GRACE_MS are skipped: their upload may still be
between its two calls.
"""
import logging
import time
from dataclasses import dataclass, field

from homevault.core.backend import BackendClient
from homevault.models.document import TABLE, Document
from homevault.services.documents import path_timestamp_ms

logger = logging.getLogger(__name__)

ORPHAN_GRACE_MS = 10 * 60 * 1000


@dataclass
class ReconcileReport:
    owner_id: str
    dry_run: bool
    orphaned_blobs: list[str] = field(default_factory=list)
    dangling_rows: list[Document] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.orphaned_blobs and not self.dangling_rows


def _old_enough(path: str, now_ms: int) -> bool:
    ts = path_timestamp_ms(path)
    # Paths not written by this service carry no timestamp; treat as old
    return ts is None or now_ms - ts >= ORPHAN_GRACE_MS


async def reconcile_owner(
    backend: BackendClient,
    access_token: str,
    owner_id: str,
    *,
    dry_run: bool = False,
    now_ms: int | None = None,
) -> ReconcileReport:
    if now_ms is None:
        now_ms = int(time.time() * 1000)

    stored = set(await backend.list_objects(access_token, owner_id))
    rows = await backend.select_all(TABLE, access_token, eq={"owner_id": owner_id})
    docs = [Document.model_validate(r) for r in rows]
    referenced = {d.file_path for d in docs}

    report = ReconcileReport(owner_id=owner_id, dry_run=dry_run)
    report.orphaned_blobs = sorted(
        p for p in stored - referenced if _old_enough(p, now_ms)
    )
    report.dangling_rows = [d for d in docs if d.file_path not in stored]

    if report.clean:
        logger.debug("Owner %s: storage and rows agree", owner_id)
        return report

    logger.info(
        "Owner %s: %d orphaned file(s), %d dangling row(s)%s",
        owner_id, len(report.orphaned_blobs), len(report.dangling_rows),
        " (dry run)" if dry_run else "",
    )
    if dry_run:
        return report

    if report.orphaned_blobs:
        await backend.remove(access_token, report.orphaned_blobs)
    for doc in report.dangling_rows:
        await backend.delete(TABLE, access_token, eq={"id": str(doc.id)})
    return report
