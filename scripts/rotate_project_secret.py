from __future__ import annotations

import argparse
import asyncio
import sys

from baseplane.persistence.db import Database
from baseplane.persistence.repository import TenantRepository
from baseplane.providers.infrastructure.factory import get_provisioner
from baseplane.services.control_plane import ControlPlane


def _build_parser() -> argparse.ArgumentParser:
    # Secret rotation revokes every outstanding token for the project; require explicit ids.
    parser = argparse.ArgumentParser(
        description="Rotate a project's signing secret and reissue its anon/service tokens"
    )
    parser.add_argument("project_id", type=int, help="Project to rotate")
    parser.add_argument(
        "--principal-id",
        type=int,
        required=True,
        help="Admin or owner of the project's organization the rotation is performed for",
    )
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL from settings")
    parser.add_argument(
        "--show-secret",
        action="store_true",
        help="Print the new signing secret (tokens are always printed)",
    )
    return parser


async def _run(args: argparse.Namespace) -> int:
    database = Database(args.database_url)
    try:
        async with database.session() as session:
            control_plane = ControlPlane(
                repository=TenantRepository(session), provisioner=get_provisioner()
            )
            rotated = await control_plane.regenerate_signing_secret(args.principal_id, args.project_id)
    finally:
        await database.dispose()

    print("Project signing secret rotated; previously issued tokens no longer verify.")
    print(f"  project_id: {args.project_id}")
    if args.show_secret:
        print(f"  signing_secret: {rotated.signing_secret}")
    print(f"  anon_token: {rotated.anon_token}")
    print(f"  service_token: {rotated.service_token}")
    return 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    try:
        return asyncio.run(_run(args))
    except Exception as exc:  # noqa: BLE001 - surface rotation failures clearly in CLI output.
        print(f"rotate_project_secret failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
