"""
Create a user, e.g. the first admin. Registration over HTTP only ever creates
role "user"; this is the way to get an admin. Run from project root:
  python -m beershop.scripts.create_user NAME EMAIL PASSWORD [role]
Example:
  python -m beershop.scripts.create_user "Shop Admin" admin@example.com your-secure-password admin
"""
import argparse
import sys

from beershop.core.config import get_settings
from beershop.core.database import SessionLocal
from beershop.core.errors import DuplicateCredential
from beershop.schemas.requests import REGISTER
from beershop.services.credentials import CredentialStore
from beershop.services.validation import Invalid, validate


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Beershop user.")
    parser.add_argument("name", help="Display name (2-50 chars)")
    parser.add_argument("email", help="Email address, used to log in")
    parser.add_argument("password", help="Password (8-128 chars)")
    parser.add_argument("role", nargs="?", default="user", choices=["user", "admin"])
    args = parser.parse_args(argv)

    result = validate(
        {"name": args.name, "email": args.email, "password": args.password}, REGISTER
    )
    if isinstance(result, Invalid):
        for error in result.errors:
            print(f"{error.field}: {error.reason}", file=sys.stderr)
        return 1

    store = CredentialStore(rounds=get_settings().BCRYPT_ROUNDS)
    db = SessionLocal()
    try:
        user_id = store.register(
            db,
            name=result.value.name,
            email=result.value.email,
            raw_password=result.value.password,
            role=args.role,
        )
    except DuplicateCredential:
        print(f"A user with email '{args.email}' already exists.", file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"Created user {user_id} ('{result.value.email}') with role '{args.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
