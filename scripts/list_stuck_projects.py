from __future__ import annotations

import argparse
import asyncio
from datetime import timedelta
import json
import sys

from baseplane.core.config import get_settings
from baseplane.persistence.db import Database
from baseplane.persistence.repository import TenantRepository
from baseplane.services.maintenance import find_stuck_projects


def _build_parser() -> argparse.ArgumentParser:
    # Report only; reconciling a stuck project is an operator decision.
    parser = argparse.ArgumentParser(
        description="List projects stuck in provisioning or deleting past a threshold"
    )
    parser.add_argument(
        "--older-than-minutes",
        type=int,
        default=get_settings().stuck_project_threshold_minutes,
        help="Minimum time since the project's last status change",
    )
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL from settings")
    parser.add_argument("--json", action="store_true", help="Emit one JSON object per project")
    return parser


async def _run(args: argparse.Namespace) -> int:
    database = Database(args.database_url)
    try:
        async with database.session() as session:
            projects = await find_stuck_projects(
                TenantRepository(session), timedelta(minutes=args.older_than_minutes)
            )
    finally:
        await database.dispose()

    for project in projects:
        updated_at = project.updated_at.isoformat() if project.updated_at else None
        if args.json:
            print(
                json.dumps(
                    {
                        "id": project.id,
                        "slug": project.slug,
                        "organization_id": project.organization_id,
                        "status": project.status.value,
                        "updated_at": updated_at,
                    }
                )
            )
        else:
            print(f"{project.id}\t{project.slug}\t{project.status.value}\t{updated_at}")
    if not args.json:
        print(f"stuck projects: {len(projects)}", file=sys.stderr)
    # Non-zero exit lets cron/alerting treat any stuck project as actionable.
    return 2 if projects else 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    try:
        return asyncio.run(_run(args))
    except Exception as exc:  # noqa: BLE001 - surface report failures clearly in CLI output.
        print(f"list_stuck_projects failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
