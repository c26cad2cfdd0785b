from __future__ import annotations

import argparse
import asyncio
import sys

from baseplane.domain.types import PlanType
from baseplane.persistence.db import Database
from baseplane.persistence.repository import TenantRepository
from baseplane.services.plans import DEFAULT_PLAN_LIMITS, seed_plan_limits


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Upsert the free/pro/enterprise plan limits")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL from settings")
    parser.add_argument(
        "--max-projects",
        action="append",
        default=[],
        metavar="PLAN=N",
        help="Override a plan's project ceiling, e.g. free=3 (-1 means unlimited); repeatable",
    )
    return parser


def _parse_overrides(values: list[str]) -> dict[PlanType, dict[str, int]]:
    overrides: dict[PlanType, dict[str, int]] = {}
    for raw in values:
        plan, _, limit = raw.partition("=")
        try:
            overrides[PlanType(plan.strip().lower())] = {"max_projects": int(limit)}
        except ValueError as exc:
            raise ValueError(f"invalid --max-projects value: {raw!r}") from exc
    return overrides


async def _run(args: argparse.Namespace) -> int:
    overrides = _parse_overrides(args.max_projects)
    database = Database(args.database_url)
    try:
        async with database.session() as session:
            seeded = await seed_plan_limits(TenantRepository(session), overrides)
    finally:
        await database.dispose()

    for plan in seeded:
        limit = overrides.get(plan, {}).get("max_projects", DEFAULT_PLAN_LIMITS[plan]["max_projects"])
        print(f"  {plan.value}: max_projects={limit}")
    return 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    try:
        return asyncio.run(_run(args))
    except Exception as exc:  # noqa: BLE001 - surface seeding failures clearly in CLI output.
        print(f"seed_plans failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
