"""
Operator script — repair orphaned files and dangling document rows for
every owner.

Uses the service-role key, so row-level policies do not apply.  Run with:

    docker exec homevault-api-1 bash -c \\
        "export PYTHONPATH=/app && python -m homevault.scripts.reconcile_storage --dry-run"

Safe to re-run: a clean owner is left untouched, and files uploaded in the
last few minutes are never treated as orphans.
"""
import argparse
import asyncio
import logging
import sys

from homevault.core.backend import BackendError, close_backend, get_backend
from homevault.core.config import settings
from homevault.models.document import TABLE as DOCUMENTS
from homevault.models.owner import TABLE as OWNERS
from homevault.services.reconcile import reconcile_owner

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger("reconcile")


async def owner_ids(key: str) -> list[str]:
    backend = get_backend()
    owners = await backend.select_all(OWNERS, key, columns="id")
    doc_owners = await backend.select_all(DOCUMENTS, key, columns="id,owner_id")
    return sorted({r["id"] for r in owners} | {r["owner_id"] for r in doc_owners})


async def run(dry_run: bool) -> int:
    key = settings.supabase_service_role_key
    if not key:
        logger.error("SUPABASE_SERVICE_ROLE_KEY is not set")
        return 1

    try:
        return await reconcile_all(key, dry_run)
    finally:
        await close_backend()


async def reconcile_all(key: str, dry_run: bool) -> int:
    backend = get_backend()
    ids = await owner_ids(key)
    logger.info("Reconciling %d owner(s)%s...", len(ids), " (dry run)" if dry_run else "")

    orphans = dangling = failed = 0
    for owner_id in ids:
        try:
            report = await reconcile_owner(backend, key, owner_id, dry_run=dry_run)
        except BackendError as e:
            logger.warning("  ✗ %s: %s", owner_id, e.message)
            failed += 1
            continue
        for path in report.orphaned_blobs:
            logger.info("  orphaned file   %s", path)
        for doc in report.dangling_rows:
            logger.info("  dangling row    %s -> %s", doc.id, doc.file_path)
        orphans += len(report.orphaned_blobs)
        dangling += len(report.dangling_rows)

    logger.info("Done. orphaned=%d  dangling=%d  failed_owners=%d", orphans, dangling, failed)
    return 1 if failed else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Repair orphaned files and dangling document rows.")
    parser.add_argument("--dry-run", action="store_true", help="report without removing anything")
    args = parser.parse_args()
    sys.exit(asyncio.run(run(args.dry_run)))


if __name__ == "__main__":
    main()
