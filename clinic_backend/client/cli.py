"""Terminal front end for the clinic API.

Usage:
    python -m clinic_backend.client.cli login --email you@example.com --password secret
    python -m clinic_backend.client.cli slots --available
    python -m clinic_backend.client.cli book 42
"""
import argparse
import getpass
import sys
from datetime import datetime

from clinic_backend.client.api_client import ApiClient, ApiError
from clinic_backend.client.session import ClientSession
from clinic_backend.core import config


def format_window(slot: dict) -> str:
    start = datetime.fromisoformat(slot["startAt"])
    end = datetime.fromisoformat(slot["endAt"])
    return f"{start:%a %Y-%m-%d %H:%M}-{end:%H:%M}"


def print_slots(slots: list, available_only: bool = False) -> None:
    shown = [slot for slot in slots if not (available_only and slot["isBooked"])]
    if not shown:
        print("No slots found.")
        return
    for slot in shown:
        state = "booked" if slot["isBooked"] else "open"
        print(f"{slot['id']:>5}  {format_window(slot)}  {state}")


def print_bookings(bookings: list, show_user: bool = False) -> None:
    if not bookings:
        print("No bookings found.")
        return
    for booking in bookings:
        line = f"{booking['id']:>5}  {format_window(booking['slot'])}"
        if show_user:
            line += f"  {booking['user']['name']} <{booking['user']['email']}>"
        print(line)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clinic", description="Book clinic appointments.")
    parser.add_argument("--base-url", default=config.API_BASE_URL)
    parser.add_argument("--session-file", default=config.CLIENT_SESSION_PATH)
    commands = parser.add_subparsers(dest="command", required=True)

    register = commands.add_parser("register", help="create a patient account")
    register.add_argument("--name", required=True)
    register.add_argument("--email", required=True)
    register.add_argument("--password")

    login = commands.add_parser("login", help="sign in and remember the session")
    login.add_argument("--email", required=True)
    login.add_argument("--password")

    commands.add_parser("logout", help="forget the stored session")

    slots = commands.add_parser("slots", help="list appointment slots")
    slots.add_argument("--from", dest="start")
    slots.add_argument("--to", dest="end")
    slots.add_argument("--available", action="store_true", help="hide booked slots")

    book = commands.add_parser("book", help="book a slot by id")
    book.add_argument("slot_id", type=int)

    commands.add_parser("my-bookings", help="list your bookings")
    commands.add_parser("all-bookings", help="list every booking (admins only)")
    return parser


def run(args: argparse.Namespace, client: ApiClient) -> None:
    if args.command == "register":
        password = args.password or getpass.getpass()
        data = client.register(args.name, args.email, password)
        print(f"Registered and signed in as {data['user']['email']}.")
    elif args.command == "login":
        password = args.password or getpass.getpass()
        data = client.login(args.email, password)
        print(f"Signed in as {data['user']['email']} ({data['user']['role']}).")
    elif args.command == "logout":
        client.logout()
        print("Signed out.")
    elif args.command == "slots":
        print_slots(client.get_slots(args.start, args.end), available_only=args.available)
    elif args.command == "book":
        booking = client.book_slot(args.slot_id)
        print(f"Booked {format_window(booking['slot'])} (booking {booking['id']}).")
    elif args.command == "my-bookings":
        print_bookings(client.get_my_bookings())
    elif args.command == "all-bookings":
        print_bookings(client.get_all_bookings(), show_user=True)


def main(argv: list[str] | None = None, client: ApiClient | None = None) -> int:
    args = build_parser().parse_args(argv)
    owns_client = client is None
    if owns_client:
        client = ApiClient(base_url=args.base_url, session=ClientSession(args.session_file).load())

    try:
        run(args, client)
    except ApiError as exc:
        print(f"Error: {exc.message} ({exc.code})", file=sys.stderr)
        return 1
    finally:
        if owns_client:
            client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
