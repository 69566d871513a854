"""
spotify-collage command line client.

    spotify-collage login               # print the Spotify authorization URL
    spotify-collage callback CODE       # finish login with the ?code= from the redirect
    spotify-collage collage --type tracks --time-range short_term --size 4x4
    spotify-collage keepalive           # stay running and refresh the token before it expires
    spotify-collage logout
"""
import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path

from client_cli.auth_session import AuthSession
from client_cli.collage import build_collage
from client_cli.config import COOKIE_PATH, DEFAULT_GRID_SIZE, GRID_SIZES, OUTPUT_DIR, RELAY_URL, STATE_DB_URL
from client_cli.errors import AuthError, MissingCredential, NetworkFailure
from client_cli.export import export_collage
from client_cli.gateway import RelayClient
from client_cli.storage import DurableStore
from client_cli.token_store import TokenStore

ITEM_TYPES = ("artists", "tracks")
TIME_RANGES = ("short_term", "medium_term", "long_term")


def build_session(database_url: str = STATE_DB_URL, relay_url: str = RELAY_URL) -> AuthSession:
    store = TokenStore(DurableStore(database_url))
    gateway = RelayClient(base_url=relay_url, cookie_path=COOKIE_PATH)
    return AuthSession(store, gateway)


async def cmd_login(auth: AuthSession, args) -> int:
    url = await auth.login_url()
    print("Open this URL in a browser and approve access, then run:")
    print("  spotify-collage callback <code from the redirect URL>")
    print(url)
    return 0


async def cmd_callback(auth: AuthSession, args) -> int:
    session = await auth.complete_login(args.code)
    name = session.user.display_name if session.user else "Spotify user"
    print(f"Successfully logged in as {name}")
    return 0


async def cmd_status(auth: AuthSession, args) -> int:
    session = auth.session
    if not session.is_authenticated:
        print("Not logged in")
        return 1
    left = session.seconds_left(time.time()) or 0
    print(f"Logged in; access token valid for {int(left // 60)}m{int(left % 60):02d}s")
    if session.user:
        print(f"User: {session.user.display_name} <{session.user.email}>")
    return 0


async def cmd_profile(auth: AuthSession, args) -> int:
    auth.require_token()
    profile = await auth.profile()
    if profile is None:
        print("Profile unavailable", file=sys.stderr)
        return 1
    print(json.dumps({"id": profile.id, "display_name": profile.display_name,
                      "email": profile.email, "images": profile.image_urls}, indent=2))
    return 0


async def cmd_top(auth: AuthSession, args) -> int:
    data = await auth.gateway.get_top_items(auth.require_token(), args.type, args.time_range, args.limit)
    for rank, item in enumerate(data.get("items", []), start=1):
        if args.type == "tracks":
            artists = ", ".join(a.get("name", "") for a in item.get("artists", []))
            print(f"{rank:2d}. {item.get('name')} - {artists}")
        else:
            print(f"{rank:2d}. {item.get('name')}")
    return 0


async def cmd_collage(auth: AuthSession, args) -> int:
    collage = await build_collage(
        auth, args.type, args.time_range, collage_size=args.size, show_labels=not args.no_labels
    )
    if not collage.items:
        print(f"No top {args.type} found for {args.time_range}", file=sys.stderr)
        return 1
    report = export_collage(collage, args.output_dir)
    result = report.result
    if result is None:
        print("All download methods failed.", file=sys.stderr)
        for attempt in report.attempts:
            print(f"  {attempt.strategy}: {attempt.error}", file=sys.stderr)
        return 1
    print(f"Collage saved to {result.path}")
    if collage.attribution.get("disclaimer"):
        print(collage.attribution["disclaimer"])
    return 0


async def cmd_refresh(auth: AuthSession, args) -> int:
    if await auth.refresh_now():
        print("Access token refreshed")
        return 0
    print("Refresh failed" + ("" if auth.is_authenticated else "; please log in again"), file=sys.stderr)
    return 1


async def cmd_keepalive(auth: AuthSession, args) -> int:
    auth.require_token()
    print("Keeping session fresh; Ctrl-C to stop")
    await auth.scheduler.wait()
    if auth.is_authenticated:
        print("Refresh failed (network); session kept, try again later", file=sys.stderr)
    else:
        print("Session ended; please log in again", file=sys.stderr)
    return 1


async def cmd_logout(auth: AuthSession, args) -> int:
    await auth.logout()
    print("Successfully logged out")
    return 0


COMMANDS = {
    "login": cmd_login,
    "callback": cmd_callback,
    "status": cmd_status,
    "profile": cmd_profile,
    "top": cmd_top,
    "collage": cmd_collage,
    "refresh": cmd_refresh,
    "keepalive": cmd_keepalive,
    "logout": cmd_logout,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spotify-collage",
        description="Generate collages of your top Spotify artists and tracks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("login", help="Print the Spotify authorization URL")
    p = sub.add_parser("callback", help="Finish login with the authorization code")
    p.add_argument("code")
    sub.add_parser("status", help="Show login state")
    sub.add_parser("profile", help="Show the Spotify profile")

    def add_query_args(p, default_limit=None):
        p.add_argument("--type", choices=ITEM_TYPES, default="artists")
        p.add_argument("--time-range", choices=TIME_RANGES, default="medium_term")
        if default_limit is not None:
            p.add_argument("--limit", type=int, default=default_limit)

    add_query_args(sub.add_parser("top", help="List top artists or tracks"), default_limit=20)
    p = sub.add_parser("collage", help="Generate and save a collage")
    add_query_args(p)
    p.add_argument("--size", choices=list(GRID_SIZES), default=DEFAULT_GRID_SIZE)
    p.add_argument("--no-labels", action="store_true", help="Hide names on tiles")
    p.add_argument("--output-dir", type=Path, default=OUTPUT_DIR)
    sub.add_parser("refresh", help="Refresh the access token now")
    sub.add_parser("keepalive", help="Stay running and refresh before expiry")
    sub.add_parser("logout", help="Log out and forget the session")
    return parser


async def run(args, auth: AuthSession | None = None) -> int:
    auth = auth or build_session()
    try:
        await auth.initialize()
        return await COMMANDS[args.command](auth, args)
    except MissingCredential as e:
        print(f"{e}. Run 'spotify-collage login' first.", file=sys.stderr)
        return 1
    except NetworkFailure as e:
        print(f"Could not reach the relay at {RELAY_URL}: {e}. Please try again.", file=sys.stderr)
        return 1
    except AuthError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await auth.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
