"""
Operator commands.

    python -m app.cli grant-owner someone@example.com
"""
import argparse
import getpass
import logging
import sys
from app.database import SessionLocal, init_db
from app.models import User
from app.models.user import OWNER_ROLE
from app.services.auth import grant_role

logger = logging.getLogger(__name__)


def grant_owner(email: str, granted_by: str) -> int:
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            print(f"No user with email {email}. They must sign in once first.", file=sys.stderr)
            return 1
        if user.is_owner:
            print(f"{email} is already an owner.")
            return 0
        grant_role(db, user, OWNER_ROLE, granted_by=granted_by)
        print(f"Granted owner to {email} (user {user.id}).")
        return 0
    finally:
        db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="python -m app.cli", description="Desi AI operator commands")
    subparsers = parser.add_subparsers(dest="command", required=True)

    grant = subparsers.add_parser("grant-owner", help="Give an existing user the owner role")
    grant.add_argument("email")
    grant.add_argument("--granted-by", default=f"cli:{getpass.getuser()}", help="Recorded on the grant")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    init_db()
    if args.command == "grant-owner":
        return grant_owner(args.email, args.granted_by)
    return 2


if __name__ == "__main__":
    sys.exit(main())
