"""
plandata command line entry point
Query planning applications and constraints around a location
"""

import argparse
import asyncio
import sys

from loguru import logger

from plandata.services.errors import PlanningDataError
from plandata.services.planning import PlanningDataService
from plandata.settings import Settings
from plandata.utils import format_distance


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fetch planning applications and constraints near a location."
    )
    parser.add_argument("lat", type=float, nargs="?", help="Latitude (WGS84)")
    parser.add_argument("lng", type=float, nargs="?", help="Longitude (WGS84)")
    parser.add_argument("--radius", type=float, default=500, help="Radius in metres")
    parser.add_argument("--from-date", help="Earliest start date (YYYY-MM-DD)")
    parser.add_argument("--to-date", help="Latest start date (YYYY-MM-DD)")
    parser.add_argument("--skip-cache", action="store_true", help="Ignore cached data")
    parser.add_argument("--no-cache", action="store_true", help="Disable cache reads")
    parser.add_argument("--summary", action="store_true", help="Print a text summary")
    parser.add_argument("--health", action="store_true", help="Check API health only")
    parser.add_argument(
        "--sweep-cache", action="store_true", help="Remove expired cache entries"
    )
    return parser


def print_summary(result) -> None:
    authority = result.local_authority
    print(
        f"{authority.name}: {authority.approval_rate:.0%} approved, "
        f"~{authority.avg_decision_days} days to decide "
        f"({authority.planning_climate.value})"
    )
    for app in result.applications:
        print(
            f"  {format_distance(app.distance_m):>7}  {app.status.value:<9}  "
            f"{app.id}  {app.address}"
        )
    for constraint in result.constraints:
        print(f"  [{constraint.type.value}] {constraint.name}")


async def main(argv: list[str] | None = None) -> int:
    """Main function"""
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()

    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper())

    async with PlanningDataService(settings) as service:
        if args.no_cache:
            service.set_caching_enabled(False)

        if args.sweep_cache:
            removed = await service.sweep_cache()
            stats = await service.cache_stats()
            print(f"Removed {removed} expired entries, {stats.count} remaining")
            return 0

        if args.health:
            healthy = await service.check_health()
            print("healthy" if healthy else "unhealthy")
            return 0 if healthy else 1

        if args.lat is None or args.lng is None:
            print("lat and lng are required", file=sys.stderr)
            return 2

        try:
            result = await service.query(
                args.lat,
                args.lng,
                args.radius,
                from_date=args.from_date,
                to_date=args.to_date,
                skip_cache=args.skip_cache,
            )
        except PlanningDataError as e:
            logger.error(f"Query failed: {e.kind.value}: {e}")
            print(e.user_message, file=sys.stderr)
            return 1

        if args.summary:
            print_summary(result)
        else:
            print(result.model_dump_json(indent=2))
        return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
