"""
Contract Reporter CLI
=====================

Inspect an exported outline from the command line.

COMMANDS:
- validate: Structural errors, warnings and state for every idea
- next:     The next field to fill (with its prompt) per idea
- stale:    Ideas with no lifecycle transition for N days

USAGE:
    python -m enforcer.cli [--data-dir DIR] [COMMAND] OUTLINE [ARGS]
"""
import argparse
import json
import sys
from typing import List, Optional

from .contracts.base import Timestamp
from .engine import ContractEnforcer, EnforcerConfig, idea_not_found
from .extraction import OutlineFormatError
from .observer import ObserverConfig
from .store import StoreConfig


def load_outline_file(path: str):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def _build_enforcer(args) -> ContractEnforcer:
    days = getattr(args, "days", None)
    config = EnforcerConfig(
        store=StoreConfig(max_depth=args.max_depth),
        observer=ObserverConfig(stale_days=days if days is not None else ObserverConfig().stale_days),
        data_dir=args.data_dir,
    )
    return ContractEnforcer(config)


def _print_error(error):
    print(f"[!] {error.code.name}: {error.message}")


def _load(args) -> Optional[ContractEnforcer]:
    enforcer = _build_enforcer(args)
    print(f"[*] Loading outline: {args.outline}")
    try:
        result = enforcer.load_outline(load_outline_file(args.outline))
    except (OSError, ValueError) as e:
        # OutlineFormatError and JSONDecodeError are both ValueErrors
        kind = "Outline format" if isinstance(e, OutlineFormatError) else "Read"
        print(f"[!] {kind} error: {e}")
        return None
    print(f"    Loaded {len(result.store)} ideas, {len(result.store.containers)} other nodes.")
    for error in result.errors:
        _print_error(error)
    return enforcer


def cmd_validate(args) -> int:
    """Report every idea; exit 1 if any idea has structural errors."""
    enforcer = _load(args)
    if enforcer is None:
        return 2

    reports = enforcer.validate_all()
    if args.idea:
        if args.idea not in reports:
            _print_error(idea_not_found(args.idea))
            return 2
        reports = {args.idea: reports[args.idea]}

    failing = 0
    for idea_id, report in reports.items():
        idea = enforcer.store[idea_id]
        marker = "[FAIL]" if report.errors else "[PASS]"
        print(f"{marker} {idea_id} {report.state.tag:<14} {idea.title}")
        for message in report.errors:
            print(f"    error:   {message}")
        for message in report.warnings:
            print(f"    warning: {message}")
        if report.errors:
            failing += 1

    if failing:
        print(f"[FAIL] {failing} of {len(reports)} ideas have structural errors.")
        return 1
    print(f"[+] {len(reports)} ideas validated. No structural errors.")
    return 0


def cmd_next(args) -> int:
    """Print the next field to fill for each idea."""
    enforcer = _load(args)
    if enforcer is None:
        return 2

    ids = [args.idea] if args.idea else sorted(i.id for i in enforcer.store)
    for idea_id in ids:
        if idea_id not in enforcer.store:
            _print_error(idea_not_found(idea_id))
            return 2
        prompt = enforcer.next_prompt(idea_id)
        if prompt is None:
            print(f"[+] {idea_id}: complete")
            continue
        field_name, text = prompt
        print(f"[*] {idea_id}: {field_name.label} - {text}")
        if args.suggest:
            suggestion = enforcer.suggest(idea_id, field_name)
            for line in suggestion.text.splitlines():
                print(f"      {line}")
    return 0


def cmd_stale(args) -> int:
    """List ideas whose last lifecycle transition is older than --days."""
    enforcer = _load(args)
    if enforcer is None:
        return 2

    stale = enforcer.stale_ideas(Timestamp.now())
    if not stale:
        print("[+] No stale ideas.")
        return 0
    for idea, staleness in stale:
        print(f"[!] {idea.id}: {staleness.days_since_change} days without a state change ({idea.title})")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Contract Reporter")
    parser.add_argument("--data-dir", default=None, help="Directory holding state timestamps and events")
    parser.add_argument("--max-depth", type=int, default=StoreConfig().max_depth, help="Ancestor walk bound")

    subparsers = parser.add_subparsers(dest="command")

    validate_parser = subparsers.add_parser("validate", help="Validate ideas")
    validate_parser.add_argument("outline", help="Outline export (JSON)")
    validate_parser.add_argument("--idea", help="Only this idea id")

    next_parser = subparsers.add_parser("next", help="Show next field to fill")
    next_parser.add_argument("outline", help="Outline export (JSON)")
    next_parser.add_argument("--idea", help="Only this idea id")
    next_parser.add_argument("--suggest", action="store_true", help="Include a suggested value")

    stale_parser = subparsers.add_parser("stale", help="List stale ideas")
    stale_parser.add_argument("outline", help="Outline export (JSON)")
    stale_parser.add_argument("--days", type=int, default=None, help="Staleness threshold in days")

    args = parser.parse_args(argv)

    if args.command == "validate":
        return cmd_validate(args)
    elif args.command == "next":
        return cmd_next(args)
    elif args.command == "stale":
        return cmd_stale(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
