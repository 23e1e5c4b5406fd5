"""CLI tool for managing player and DM API keys on a running combat server.

Talks to the server's /admin endpoints, so the server must be running.

Usage:
    python manage_tokens.py create --owner alice --name "Alice"
    python manage_tokens.py list
    python manage_tokens.py rotate --owner alice
    python manage_tokens.py delete --owner alice
    python manage_tokens.py set-secret --secret "a-new-admin-secret"

Environment variables:
    TACTICS_URL      - Server URL (default: http://127.0.0.1:8000)
    ADMIN_SECRET     - Admin secret for the server (default: change-me-in-production)
"""

import argparse
import os
import sys

import httpx

DEFAULT_URL = os.environ.get("TACTICS_URL", "http://127.0.0.1:8000")
ADMIN_SECRET = os.environ.get("ADMIN_SECRET", "change-me-in-production")


class AdminError(Exception):
    """The server rejected an admin request."""


def _check(resp: httpx.Response) -> dict | list:
    """Return the JSON body, or raise AdminError with a readable message."""
    if resp.status_code == 403:
        raise AdminError("Invalid admin secret (set ADMIN_SECRET to match the server)")
    if resp.status_code != 200:
        try:
            detail = resp.json().get("detail", resp.text)
        except ValueError:
            detail = resp.text
        raise AdminError(f"{resp.status_code}: {detail}")
    return resp.json()


def create_user(client: httpx.Client, owner_id: str, name: str) -> str:
    """Register a player or DM and return the new API key."""
    data = _check(client.post("/admin/register", json={"owner_id": owner_id, "name": name}))
    print(f"Registered: {owner_id}")
    print(f"API Key:    {data['api_key']}")
    return data["api_key"]


def list_users(client: httpx.Client) -> list[dict]:
    """Print and return every registered user."""
    users = _check(client.get("/admin/users"))
    if not users:
        print("No registered users.")
        return users
    print(f"{'OWNER_ID':<20} {'NAME':<20}")
    print("-" * 40)
    for user in users:
        print(f"{user['owner_id']:<20} {user['name']:<20}")
    return users


def rotate_user_token(client: httpx.Client, owner_id: str) -> str:
    """Issue a new API key; the old one stops working."""
    data = _check(client.post(f"/admin/users/{owner_id}/rotate"))
    print(f"Rotated:     {data['owner_id']}")
    print(f"New API Key: {data['api_key']}")
    return data["api_key"]


def delete_user(client: httpx.Client, owner_id: str) -> int:
    """Delete a user. Returns how many campaign memberships were dropped."""
    data = _check(client.delete(f"/admin/users/{owner_id}"))
    print(data["message"])
    if data["memberships_removed"]:
        print(f"Removed from {data['memberships_removed']} campaign(s).")
    return data["memberships_removed"]


def set_secret(client: httpx.Client, new_secret: str) -> None:
    """Change the server's admin secret."""
    data = _check(client.put("/admin/secret", json={"new_secret": new_secret}))
    print(data["message"])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage combat server API keys")
    parser.add_argument("--url", default=DEFAULT_URL, help=f"Server URL (default: {DEFAULT_URL})")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_parser = subparsers.add_parser("create", help="Register a new player or DM")
    create_parser.add_argument("--owner", required=True, help="Unique owner_id")
    create_parser.add_argument("--name", required=True, help="Display name")

    subparsers.add_parser("list", help="List registered users")

    rotate_parser = subparsers.add_parser("rotate", help="Rotate API key (invalidates old key)")
    rotate_parser.add_argument("--owner", required=True, help="owner_id to rotate")

    delete_parser = subparsers.add_parser("delete", help="Delete a user and their memberships")
    delete_parser.add_argument("--owner", required=True, help="owner_id to delete")

    secret_parser = subparsers.add_parser("set-secret", help="Change the admin secret")
    secret_parser.add_argument("--secret", required=True, help="New secret, at least 8 characters")
    return parser


def run(args: argparse.Namespace, client: httpx.Client) -> None:
    if args.command == "create":
        create_user(client, args.owner, args.name)
    elif args.command == "list":
        list_users(client)
    elif args.command == "rotate":
        rotate_user_token(client, args.owner)
    elif args.command == "delete":
        delete_user(client, args.owner)
    elif args.command == "set-secret":
        set_secret(client, args.secret)


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    headers = {"X-Admin-Secret": ADMIN_SECRET}
    try:
        with httpx.Client(base_url=args.url, headers=headers, timeout=10.0) as client:
            run(args, client)
    except httpx.ConnectError:
        print(f"Error: Could not connect to server at {args.url}", file=sys.stderr)
        print("Is the server running?", file=sys.stderr)
        sys.exit(1)
    except AdminError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
