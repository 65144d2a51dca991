"""Command-line entrypoint for managing profiles and switching accounts."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Sequence

from account_switch import __version__
from account_switch.app import AppContext, build_app_context
from account_switch.config import load_settings
from account_switch.errors import AccountSwitchError
from account_switch.identity.persister import reset_machine_identity
from account_switch.logging_utils import configure_logging, mask_secret
from account_switch.switching.results import SwitchOutcome


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="account-switch",
        description="Manage saved accounts and switch the active one in the host IDE.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("paths", help="Show resolved file locations")
    sub.add_parser("current", help="Show the account recorded in the host database")
    sub.add_parser("backup", help="Back up the host database")
    sub.add_parser("reset-ids", help="Generate and persist new machine identifiers")

    profiles = sub.add_parser("profiles", help="Manage saved profiles")
    profiles_sub = profiles.add_subparsers(dest="profiles_command", required=True)
    profiles_sub.add_parser("list", help="List saved profiles")
    profiles_sub.add_parser("export", help="Print saved profiles as JSON")
    import_parser = profiles_sub.add_parser("import", help="Import profiles from JSON or YAML")
    import_parser.add_argument("file", type=Path)
    remove_parser = profiles_sub.add_parser("remove", help="Delete a profile and its secrets")
    remove_parser.add_argument("profile_id")

    kv = sub.add_parser("kv", help="Inspect or edit the host key-value table")
    kv_sub = kv.add_subparsers(dest="kv_command", required=True)
    kv_get = kv_sub.add_parser("get")
    kv_get.add_argument("key")
    kv_delete = kv_sub.add_parser("delete")
    kv_delete.add_argument("key")
    kv_pattern = kv_sub.add_parser("delete-pattern")
    kv_pattern.add_argument("pattern", help="SQL LIKE pattern, e.g. 'codeium.%%'")
    kv_keys = kv_sub.add_parser("keys")
    kv_keys.add_argument("pattern", nargs="?", default="%")

    switch = sub.add_parser("switch", help="Switch to a saved profile")
    switch.add_argument("profile_id")
    sub.add_parser("switch-next", help="Switch to the next saved profile")
    return parser


def _report_outcome(outcome: SwitchOutcome) -> int:
    if outcome.success:
        if outcome.reloading:
            print("Account written to the host database. Reload the host to apply it.")
        else:
            print("Account switched.")
        return 0
    if outcome.needs_restart:
        print(f"Restart required: {outcome.error}", file=sys.stderr)
    else:
        print(f"Switch failed: {outcome.error}", file=sys.stderr)
    return 1


async def _run_profiles(ctx: AppContext, args: argparse.Namespace) -> int:
    if args.profiles_command == "list":
        index = await ctx.profiles.current_index()
        for position, profile in enumerate(await ctx.profiles.list()):
            marker = "*" if position == index else " "
            print(
                f"{marker} {profile.id}  {profile.email:<32} {profile.plan_name:<8} "
                f"{mask_secret(profile.api_key)}"
            )
        return 0
    if args.profiles_command == "export":
        print(await ctx.profiles.export_profiles())
        return 0
    if args.profiles_command == "import":
        count = await ctx.profiles.import_profiles(args.file.read_text(encoding="utf-8"))
        print(f"Imported {count} profile(s)")
        return 0
    if args.profiles_command == "remove":
        if await ctx.profiles.remove(args.profile_id):
            print(f"Removed {args.profile_id}")
            return 0
        print(f"Profile not found: {args.profile_id}", file=sys.stderr)
        return 1
    return 2


async def _run_kv(ctx: AppContext, args: argparse.Namespace) -> int:
    if args.kv_command == "get":
        value = await ctx.store.read(args.key)
        if value is None:
            print(f"{args.key}: <absent>", file=sys.stderr)
            return 1
        _print_json(list(value) if isinstance(value, bytes) else value)
        return 0
    if args.kv_command == "delete":
        return 0 if await ctx.store.delete(args.key) else 1
    if args.kv_command == "delete-pattern":
        print(f"Deleted {await ctx.store.delete_by_pattern(args.pattern)} row(s)")
        return 0
    if args.kv_command == "keys":
        for key in await ctx.store.keys(args.pattern):
            print(key)
        return 0
    return 2


async def run_command(ctx: AppContext, args: argparse.Namespace) -> int:
    if args.command == "paths":
        _print_json(ctx.settings.paths.model_dump())
        return 0
    if args.command == "current":
        current = await ctx.switcher.current_account()
        if current is None:
            print("No active account recorded", file=sys.stderr)
            return 1
        data = current.to_dict()
        data["apiKey"] = mask_secret(current.apiKey)
        _print_json(data)
        return 0
    if args.command == "backup":
        path = await ctx.store.backup()
        if path is None:
            print("Backup failed", file=sys.stderr)
            return 1
        print(path)
        return 0
    if args.command == "reset-ids":
        ids = await reset_machine_identity(ctx.identity_persister)
        _print_json(ids.to_dict())
        return 0
    if args.command == "profiles":
        return await _run_profiles(ctx, args)
    if args.command == "kv":
        return await _run_kv(ctx, args)
    if args.command == "switch":
        profile = await ctx.profiles.get(args.profile_id)
        if profile is None:
            print(f"Profile not found: {args.profile_id}", file=sys.stderr)
            return 1
        return _report_outcome(await ctx.switcher.switch(profile))
    if args.command == "switch-next":
        return _report_outcome(await ctx.switcher.switch_next(ctx.profiles))
    return 2


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
        configure_logging(settings)
        ctx = build_app_context(settings)
        return asyncio.run(run_command(ctx, args))
    except (AccountSwitchError, RuntimeError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def run_entrypoint() -> None:
    sys.exit(main())
