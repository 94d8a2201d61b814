"""
Purge Stale Drafts Script

Deletes draft orders created more than DRAFT_RETENTION_DAYS ago (or
--days), with all their products, items, media, notifications and audit
rows. Runs as a super_admin so the purge is attributed in the logs.

Usage:
    python scripts/purge_stale_drafts.py --as admin@example.com
    python scripts/purge_stale_drafts.py --as 1 --days 30
"""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from orderhub.core.permissions import Actor, Role
from orderhub.db.session import SessionLocal
from orderhub.exceptions import OrderHubException
from orderhub.logging_config import get_logger, setup_logging
from orderhub.models.user import User
from orderhub.services.order_lifecycle import order_lifecycle_service

logger = get_logger(__name__)


def resolve_actor(db, identifier: str) -> Actor:
    """Look up the acting super_admin by id or email."""
    query = db.query(User)
    if identifier.isdigit():
        user = query.filter(User.id == int(identifier)).first()
    else:
        user = query.filter(User.email == identifier).first()
    if user is None:
        raise SystemExit(f"No user found for {identifier!r}")
    if user.role != Role.SUPER_ADMIN.value or not user.is_active:
        raise SystemExit(f"{user.email} is not an active super_admin")
    return Actor(id=user.id, role=Role.SUPER_ADMIN, email=user.email, name=user.name)


def main() -> int:
    parser = argparse.ArgumentParser(description="Delete stale draft orders")
    parser.add_argument("--as", dest="actor", required=True, help="super_admin user id or email")
    parser.add_argument("--days", type=int, default=None, help="Retention window in days")
    args = parser.parse_args()

    setup_logging()
    db = SessionLocal()
    try:
        actor = resolve_actor(db, args.actor)
        report = order_lifecycle_service.purge_stale_drafts(db, actor, older_than_days=args.days)
    except OrderHubException as e:
        logger.error(f"Stale draft purge failed: {e.message}")
        return 1
    finally:
        db.close()

    print(f"\nDrafts created before {report.cutoff:%Y-%m-%d %H:%M} UTC")
    print(f"  Deleted: {len(report.deleted)}")
    for number in report.deleted:
        print(f"    - {number}")
    if report.failed:
        print(f"  Failed: {len(report.failed)}")
        for number, reason in report.failed.items():
            print(f"    - {number}: {reason}")
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
