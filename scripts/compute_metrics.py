"""Compute derived metrics for all activities.

Usage:
    python -m scripts.compute_metrics             # Compute missing TRIMP, rebuild records, check badges
    python -m scripts.compute_metrics --force     # Recompute TRIMP for every activity
    python -m scripts.compute_metrics --user 3    # Only process one user
    python -m scripts.compute_metrics --quiet     # Suppress output
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from db.models import get_engine, get_session, init_db
from metrics.compute import run_full_computation
from metrics.profile import get_physiology
from metrics.training_load import get_training_load


def print_user_status(session, user_id: int) -> None:
    """Print the profile values and current form of one user."""
    profile = get_physiology(session, user_id)
    print(f"User {user_id}:")
    print(f"  Max HR: {profile['fc_max'] or '-'} (highest recorded: {profile['estimated_fc_max'] or '-'})")
    print(f"  Resting HR: {profile['fc_repos'] or '-'}")

    current = get_training_load(session, user_id).current
    print(f"  CTL (Fitness): {current.ctl:.1f}")
    print(f"  ATL (Fatigue): {current.atl:.1f}")
    print(f"  TSB (Form): {current.tsb:.1f}")
    print(f"  Status: {current.status}")
    print(f"  {current.recommendation}")


def main():
    parser = argparse.ArgumentParser(
        description="Compute derived metrics (TRIMP, personal records, badges)"
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Recompute TRIMP for all activities (default: only compute missing)",
    )
    parser.add_argument(
        "--user",
        type=int,
        help="Only process this user id",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    parser.add_argument(
        "--db",
        type=Path,
        help="Path to database file",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialize database
    engine = get_engine(args.db)
    init_db(engine)
    session = get_session(engine)

    try:
        stats = run_full_computation(session, user_id=args.user, force=args.force)

        if not args.quiet:
            print()
            print("=" * 50)
            print("Computation Summary")
            print("=" * 50)
            print(f"Users processed: {stats['users_processed']}")
            print(f"TRIMP updated: {stats['trimp_updated']}")
            print(f"Records created: {stats['records_created']}")
            print(f"Badges unlocked: {stats['badges_unlocked']}")

            if stats["errors"]:
                print(f"Errors: {len(stats['errors'])}")
                for error in stats["errors"][:5]:
                    print(f"  - {error}")
                if len(stats["errors"]) > 5:
                    print(f"  ... and {len(stats['errors']) - 5} more")

            if args.user is not None:
                print()
                print_user_status(session, args.user)

    finally:
        session.close()


if __name__ == "__main__":
    main()
