"""Create a demo election with preset positions in Supabase."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from datetime import timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_TYPES = ("President", "Secretaire", "Tresorier")


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Create an election in Preparation with one position per preset type.",
    )
    parser.add_argument(
        "admin_user_id",
        type=str,
        help="Id of an ADMIN user recorded as the election creator.",
    )
    parser.add_argument(
        "--title",
        type=str,
        default="Assemblée générale - élection du bureau",
        help="Election title.",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=14,
        help="Days between opening and closing (default: 14).",
    )
    parser.add_argument(
        "--position",
        dest="positions",
        action="append",
        default=None,
        help="Preset position type; repeat the flag for several (default: bureau).",
    )
    parser.add_argument(
        "--open",
        action="store_true",
        help="Open the election right after creating it.",
    )
    return parser.parse_args()


def create_election(
    admin_user_id: str,
    title: str,
    days: int,
    positions: Sequence[str],
    open_now: bool,
) -> dict:
    """Create the election through the service layer and return it."""
    if days < 3:
        raise ValueError("days must be >= 3")

    from app.services.common import Actor
    from app.services.election_service import ElectionService
    from app.utils.supabase_client import get_service_client
    from app.utils.time import now_utc

    service = ElectionService(get_service_client())
    actor = Actor(user_id=admin_user_id)
    opens_at = now_utc()
    election = service.create(
        actor,
        {
            "title": title,
            "opens_at": opens_at,
            "candidacy_closes_at": opens_at + timedelta(days=days // 2),
            "ballot_at": opens_at + timedelta(days=days - 1),
            "closes_at": opens_at + timedelta(days=days),
        },
        position_types=list(positions),
    )
    if open_now:
        election = {**election, **service.validate(actor, str(election["id"]))}
    return election


def print_election(election: dict) -> None:
    """Print the created election in copy-friendly form."""
    print(f"Election {election['id']} ({election['status']}): {election['title']}")
    for position in election.get("positions", []):
        print(f"  {position['id']}  {position['title']}")


def main() -> None:
    """CLI entry point."""
    args = parse_args()
    election = create_election(
        admin_user_id=args.admin_user_id,
        title=args.title,
        days=args.days,
        positions=args.positions or DEFAULT_TYPES,
        open_now=args.open,
    )
    print_election(election)


if __name__ == "__main__":
    main()
