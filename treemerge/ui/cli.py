"""Command-line interface for treemerge."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from .. import __version__
from ..core.graph import FamilyGraph
from ..matching.matcher import MatchConfidence
from ..merge.state import (
    MergeState,
    MergePhase,
    MatchDecision,
    create_merge_state,
    update_match_decision,
    set_phase,
    calculate_merge_stats,
)
from ..merge.executor import execute_merge
from ..storage.backends import StorageBackend, MemoryStorage, SqliteStorage
from ..validation.import_validator import validate_json_import

logger = logging.getLogger(__name__)


def load_graph(filepath: str) -> FamilyGraph:
    """Load and validate a family graph from a JSON file.

    Args:
        filepath: Path to the JSON export

    Returns:
        Validated FamilyGraph

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file fails validation
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    result = validate_json_import(path.read_text(encoding='utf-8'))
    for warning in result.warnings:
        logger.warning("%s: %s", filepath, warning)
    if not result.valid:
        raise ValueError(f"Invalid file {filepath}: {', '.join(result.errors)}")
    return result.data


def print_statistics(state: MergeState) -> None:
    """Print statistics about a merge state.

    Args:
        state: Merge state to summarize
    """
    stats = calculate_merge_stats(state)

    print("\n" + "=" * 60)
    print("MERGE ANALYSIS")
    print("=" * 60)
    print(f"Incoming Persons:       {stats.total:,}")
    print(f"Matched:                {stats.matched:,}")
    print(f"  High Confidence:      {stats.high_confidence:,}")
    print(f"  Medium Confidence:    {stats.medium_confidence:,}")
    print(f"  Low Confidence:       {stats.low_confidence:,}")
    print(f"Unmatched:              {stats.unmatched:,}")
    print(f"With Conflicts:         {stats.with_conflicts:,}")
    print("=" * 60 + "\n")


def print_matches(state: MergeState) -> None:
    """Print the match table of a merge state."""
    if not state.matches:
        print("No matches found.")
        return

    print("MATCHES:")
    print("-" * 60)
    for match in state.matches:
        reasons = ", ".join(r.value for r in match.reasons)
        print(f"[{match.confidence.value:>6}] {match.score:3d}  "
              f"{match.incoming_person} -> {match.existing_person}")
        print(f"         {match.incoming_id} -> {match.existing_id}  ({reasons})")
        for conflict in match.conflicts:
            print(f"         conflict {conflict.field.value}: "
                  f"{conflict.existing_value!r} vs {conflict.incoming_value!r}")
    print("-" * 60 + "\n")


def analyze_command(args: argparse.Namespace) -> int:
    """Execute the analyze command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        existing = load_graph(args.existing)
        incoming = load_graph(args.incoming)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    state = create_merge_state(existing, incoming)
    print_statistics(state)
    print_matches(state)
    return 0


def merge_command(args: argparse.Namespace) -> int:
    """Execute the merge command.

    Low-confidence matches are rejected (added as new persons) unless
    --accept-low is given.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        existing = load_graph(args.existing)
        incoming = load_graph(args.incoming)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    state = set_phase(create_merge_state(existing, incoming), MergePhase.REVIEWING)

    if not args.accept_low:
        for match in state.matches:
            if match.confidence == MatchConfidence.LOW:
                state = update_match_decision(state, match.incoming_id, MatchDecision.reject())

    for incoming_id in args.reject:
        if incoming_id not in incoming.persons:
            print(f"Warning: Unknown incoming person: {incoming_id}", file=sys.stderr)
            continue
        state = update_match_decision(state, incoming_id, MatchDecision.reject())

    state = set_phase(state, MergePhase.EXECUTING)

    storage: StorageBackend = SqliteStorage(args.storage) if args.storage else MemoryStorage()
    result = asyncio.run(execute_merge(state, storage))

    if not result.success:
        print(f"Error: Merge failed: {', '.join(result.errors)}", file=sys.stderr)
        return 1

    try:
        Path(args.output).write_text(
            json.dumps(result.merged_data.to_dict(), indent=2, ensure_ascii=False),
            encoding='utf-8'
        )
    except OSError as e:
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1

    print(result)
    for warning in result.warnings:
        print(f"  - {warning}")
    if result.backup_key and args.storage:
        print(f"Backup saved as {result.backup_key} in {args.storage}")
    print(f"Merged tree written to {args.output}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='treemerge',
        description='Match and merge two family trees exported as JSON.',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    subparsers = parser.add_subparsers(
        dest='command',
        help='Available commands'
    )

    # Analyze command
    analyze_parser = subparsers.add_parser(
        'analyze',
        help='Match two trees and display the proposed matches'
    )
    analyze_parser.add_argument('existing', help='Path to the existing tree (JSON)')
    analyze_parser.add_argument('incoming', help='Path to the incoming tree (JSON)')

    # Merge command
    merge_parser = subparsers.add_parser(
        'merge',
        help='Merge the incoming tree into the existing tree'
    )
    merge_parser.add_argument('existing', help='Path to the existing tree (JSON)')
    merge_parser.add_argument('incoming', help='Path to the incoming tree (JSON)')
    merge_parser.add_argument(
        '-o', '--output',
        required=True,
        help='Output file path for the merged tree'
    )
    merge_parser.add_argument(
        '--reject',
        action='append',
        default=[],
        metavar='ID',
        help='Incoming person ID to add as a new person (repeatable)'
    )
    merge_parser.add_argument(
        '--accept-low',
        action='store_true',
        help='Also merge low-confidence matches'
    )
    merge_parser.add_argument(
        '--storage',
        help='SQLite database that keeps the pre-merge backup'
    )

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if not args.command:
        parser.print_help()
        return 0

    if args.command == 'analyze':
        return analyze_command(args)
    elif args.command == 'merge':
        return merge_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
