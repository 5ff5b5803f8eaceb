#!/usr/bin/env python3
"""
Create the first admin account.

Usage: python scripts/seed_admin.py --username admin --email admin@store.lk --password secret123
"""

import argparse
import logging
import sys

from app.config.database import Base, SessionLocal, engine
from app.modules.admin.repository import AdminRepository
from app.modules.admin.schemas import PERMISSIONS

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger("seed_admin")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("--username", default="admin")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--first-name", default="Store")
    parser.add_argument("--last-name", default="Admin")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    if len(args.password) < 6:
        logger.error("Password must be at least 6 characters")
        return 1

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        repository = AdminRepository(db)
        if repository.find_user_conflict(args.username.lower(), args.email.lower()):
            logger.error(f"User {args.username} or {args.email} already exists")
            return 1
        user = repository.create_user({
            "username": args.username.lower(),
            "email": args.email.lower(),
            "password": args.password,
            "first_name": args.first_name,
            "last_name": args.last_name,
            "role": "admin",
            "permissions": list(PERMISSIONS)
        })
        logger.info(f"Created admin user {user.username} (id={user.id})")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
