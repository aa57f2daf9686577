"""
Create a user (e.g. an extra admin) without going through the API. Run from project root:
  python -m app.scripts.create_user USERNAME PASSWORD [--email EMAIL] [--admin]
Example:
  python -m app.scripts.create_user alice your-secure-password --admin
"""
import argparse
import logging
import sys

from dotenv import load_dotenv

from app.core.config import get_settings
from app.core.context import build_context
from app.core.errors import ServiceError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a JellyStream user.")
    parser.add_argument("username", help="Username (1-255 chars)")
    parser.add_argument("password", help="Password (at least 4 chars)")
    parser.add_argument("--email", default=None, help="Optional email address")
    parser.add_argument("--admin", action="store_true", help="Grant the admin flag")
    args = parser.parse_args(argv)

    load_dotenv()
    ctx = build_context(get_settings())
    try:
        ctx.store.ensure_schema()
        user = ctx.directory.create_user(args.username, args.email, args.password, args.admin)
    except ServiceError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        ctx.close()
    role = "admin" if user.is_admin else "user"
    print(f"Created user '{user.username}' ({role}) with id {user.id}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
