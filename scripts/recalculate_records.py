"""Rebuild personal records from activity history.

Deletes each user's records and replays their activities oldest first.

Usage:
    python -m scripts.recalculate_records             # Every user
    python -m scripts.recalculate_records --user 3    # One user
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from db.models import User, get_engine, get_session, init_db
from metrics.exceptions import UserNotFoundError
from metrics.records import get_current_records, recalculate_all_records


def main():
    parser = argparse.ArgumentParser(description="Rebuild personal records")
    parser.add_argument("--user", type=int, help="Only rebuild this user id")
    parser.add_argument("--db", type=Path, help="Path to database file")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    engine = get_engine(args.db)
    init_db(engine)
    session = get_session(engine)

    try:
        if args.user is not None:
            user_ids = [args.user]
        else:
            user_ids = [uid for (uid,) in session.query(User.id).order_by(User.id).all()]

        if not user_ids:
            print("No users found.")
            return

        for user_id in user_ids:
            try:
                created = recalculate_all_records(session, user_id)
            except UserNotFoundError:
                print(f"User {user_id} not found.")
                continue
            current = len(get_current_records(session, user_id))
            print(f"User {user_id}: {created} records created, {current} current")

    finally:
        session.close()


if __name__ == "__main__":
    main()
