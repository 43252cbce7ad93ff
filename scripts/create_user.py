"""Create a dashboard user directly in the database.

Usage: python -m scripts.create_user <username> <password> [name] [--admin]
"""

import sys

from dotenv import load_dotenv

load_dotenv()

from app.core.database import SessionLocal  # noqa: E402
from app.core.exceptions import ConflictError  # noqa: E402
from app.schemas.auth import UserCreate  # noqa: E402
from app.services.auth import AuthService  # noqa: E402

args = [arg for arg in sys.argv[1:] if arg != "--admin"]
if len(args) < 2:
    print(__doc__)
    sys.exit(1)

username, password = args[0], args[1]
name = args[2] if len(args) > 2 else username

with SessionLocal() as db:
    try:
        user = AuthService(db).register_user(
            UserCreate(name=name, username=username, password=password, is_admin="--admin" in sys.argv)
        )
        db.commit()
    except ConflictError as e:
        print(f"Error: {e.message}")
        sys.exit(1)

print(f"Created user {user.username} (id={user.id}, admin={user.is_admin})")
