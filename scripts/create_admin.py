import sys
import os

# Add the project root to the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, project_root)

import argparse
import getpass
from qafzh.auth.service import AuthService
from qafzh.database import Base, SessionLocal, engine
from qafzh.models import account, listing  # noqa: F401

def main() -> int:
    parser = argparse.ArgumentParser(description="Create an administrator or promote an existing account")
    parser.add_argument("phone")
    parser.add_argument("--name", default="Administrator")
    parser.add_argument("--password", help="Prompted for when omitted")
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        admin = AuthService().ensure_admin(args.phone, password, args.name, db)
        print(f"✅ Admin ready: id={admin.id} phone={admin.phone}")
    finally:
        db.close()
    return 0

if __name__ == "__main__":
    sys.exit(main())
