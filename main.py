#!/usr/bin/env python3
"""
Folio Admin -- admin authentication and flat-file content persistence.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py check

Environment variables (see core/config.py for the full list):
  SECRET_KEY       Signing key for session cookies. Required unless DEBUG=true.
  ADMIN_PASSWORD   Shared admin secret. Login is refused while it is unset.
  DATA_DIR         Directory holding the JSON documents, blog/ and uploads/.
"""

import argparse
import sys

from content.blog import BlogRepository
from content.filestore import FileStore
from core.config import get_settings


def check() -> int:
    """Report blog index entries and content files that do not match.

    Returns the process exit code: 0 when consistent, 1 otherwise.
    """
    settings = get_settings()
    repo = BlogRepository(FileStore(settings.data_dir), settings.blog_dir, settings.uploads_dir)
    missing, unindexed = repo.find_orphans()

    print(f"\nFolio Admin -- content check ({settings.data_dir})")
    print("-" * 40)
    print(f"  {len(repo.list_posts())} indexed post(s).")
    for slug in missing:
        print(f"  [!] '{slug}' is indexed but {slug}.md is missing.")
    for slug in unindexed:
        print(f"  [!] {slug}.md exists but has no index entry.")

    if missing or unindexed:
        print(f"\n  {len(missing) + len(unindexed)} problem(s) found.\n")
        return 1
    print("  Index and content files agree.\n")
    return 0


def serve(host: str, port: int, reload: bool) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=host, port=port, reload=reload)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="folio-admin",
        description="Admin authentication and content persistence for a portfolio site.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  DATA_DIR=/srv/site/data python main.py check
        """,
    )
    sub = parser.add_subparsers(dest="command")

    serve_parser = sub.add_parser("serve", help="Run the HTTP server with uvicorn")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve_parser.add_argument("--reload", action="store_true", help="Restart on code changes (development)")

    sub.add_parser("check", help="Report blog posts whose index entry and content file disagree")

    args = parser.parse_args()

    if args.command == "serve":
        sys.exit(serve(args.host, args.port, args.reload))
    if args.command == "check":
        sys.exit(check())
    parser.print_help()


if __name__ == "__main__":
    main()
