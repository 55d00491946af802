"""
CLI entry point for extracting facts from episode transcripts.

Walks the episode store, skips episodes that already have facts.json and
sends the rest to Gemini, either as one batch job or as throttled
synchronous calls.

Usage:
    # Extract facts for every unprocessed episode (batch job)
    python -m fishfacts.cli.extract_facts

    # Synchronous calls under the per-minute token budget
    python -m fishfacts.cli.extract_facts --mode sync

    # Reprocess everything, at most 10 episodes
    python -m fishfacts.cli.extract_facts --force --limit 10

    # Specific episode directories
    python -m fishfacts.cli.extract_facts --episode 2024-05-02_575-no-such-thing-as-a-fish

    # Show what would be processed
    python -m fishfacts.cli.extract_facts --dry-run
"""

import argparse
import sys
import time
from typing import List

from rich import box
from rich.table import Table

from fishfacts.episodes.classifier import classify
from fishfacts.episodes.store import EpisodeEntry, EpisodeStore
from fishfacts.execution.batch_orchestrator import BatchOrchestrator
from fishfacts.execution.outcomes import OutcomeKind
from fishfacts.execution.throttled_executor import ThrottledExecutor
from fishfacts.extraction.errors import ConfigurationError
from fishfacts.infrastructure.gemini_service import GeminiService
from fishfacts.infrastructure.logger import get_logger, get_shared_console
from fishfacts.pipeline.fact_pipeline import FactExtractionPipeline, RunTally

logger = get_logger(__name__)
console = get_shared_console()  # Use shared console to coordinate with logging


def parse_args(argv: List[str] | None = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Extract the four facts from podcast episode transcripts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract facts for all unprocessed episodes as one batch job
  %(prog)s

  # Use throttled synchronous calls instead of a batch job
  %(prog)s --mode sync

  # Reprocess episodes that already have facts, at most 10
  %(prog)s --force --limit 10

  # Dry run (show what would be processed)
  %(prog)s --dry-run
        """
    )

    parser.add_argument(
        "--mode",
        choices=["batch", "sync"],
        default="batch",
        help="Execution strategy: one batch job or throttled sync calls (default: batch)"
    )

    parser.add_argument(
        "--force",
        action="store_true",
        help="Reprocess episodes that already have facts.json (default: skip processed)"
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=0,
        help="Maximum number of episodes to send (default: 0 = all)"
    )

    parser.add_argument(
        "--episode",
        action="append",
        default=None,
        metavar="DIR",
        help="Process a specific episode directory (repeatable)"
    )

    parser.add_argument(
        "--standard-schema",
        action="store_true",
        help="Use the strict four-fact schema for episodes classified as standard"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be processed without calling the model"
    )

    args = parser.parse_args(argv)
    if args.limit < 0:
        parser.error("--limit must be 0 or a positive integer")
    return args


def display_summary(entries: List[EpisodeEntry], pending: List[EpisodeEntry], args) -> bool:
    """Display run settings before starting. Returns False when there is nothing to do."""
    console.print()

    table = Table(title="Extraction Summary", box=box.ROUNDED)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Episodes found", str(len(entries)))
    table.add_row("Episodes to process", str(len(pending)))
    table.add_row("Strategy", "Batch job" if args.mode == "batch" else "Throttled sync")
    table.add_row("Mode", "Reprocess all" if args.force else "Skip processed")
    if args.limit:
        table.add_row("Limit", str(args.limit))
    if args.standard_schema:
        table.add_row("Schema", "Strict four-fact for standard episodes")

    console.print(table)
    console.print()

    if not pending:
        console.print("[yellow]⚠  No episodes to process![/yellow]")
        return False

    console.print("[bold]Episodes to process (first 5):[/bold]")
    for i, entry in enumerate(pending[:5], 1):
        console.print(
            f"  {i}. [cyan]{entry.dir_name}[/cyan]: {entry.metadata.title} "
            f"({classify(entry.metadata).value})"
        )
    if len(pending) > 5:
        console.print(f"  ... and {len(pending) - 5} more")
    console.print()

    return True


def display_final_stats(tally: RunTally, elapsed: float):
    """Display final run statistics."""
    console.print()
    console.rule("[bold]EXTRACTION COMPLETE[/bold]")
    console.print()

    table = Table(title="Final Statistics", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green bold")

    table.add_row("Succeeded", str(tally.ok))
    if tally.fail > 0:
        table.add_row("Failed", str(tally.fail), style="red")
    else:
        table.add_row("Failed", "0")
    table.add_row("Skipped", str(tally.skipped))
    table.add_row("Total time", f"{elapsed / 60:.1f} minutes")

    console.print(table)

    failures = [o for o in tally.outcomes if o.kind == OutcomeKind.FAIL]
    if failures:
        console.print()
        console.print("[bold red]Failed Episodes:[/bold red]")
        for outcome in failures:
            console.print(f"  • [red]{outcome.episode_id}[/red] ({outcome.error_kind})")
            console.print(f"    {outcome.message}")

    console.print()


def build_strategy(mode: str, service: GeminiService):
    if mode == "batch":
        return BatchOrchestrator(service)
    return ThrottledExecutor(service)


def main(argv: List[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    console.rule("[bold blue]Fact Extraction[/bold blue]")
    console.print()

    store = EpisodeStore()

    if args.episode:
        try:
            entries = [store.load_episode(dir_name) for dir_name in args.episode]
        except (OSError, ValueError) as e:
            console.print(f"[bold red]Error: {e}[/bold red]")
            return 1
    else:
        console.print(f"[cyan]Scanning {store.root}...[/cyan]")
        entries = store.list_episodes()

    pending = [e for e in entries if args.force or not store.has_artifact(e.dir_name)]
    if args.limit:
        pending = pending[:args.limit]

    if not display_summary(entries, pending, args):
        return 0

    if args.dry_run:
        console.print("[yellow]Dry run mode - no requests will be sent[/yellow]")
        console.print()
        return 0

    try:
        service = GeminiService()
    except ConfigurationError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        return 1

    pipeline = FactExtractionPipeline(
        store,
        strategy=build_strategy(args.mode, service),
        force=args.force,
        limit=args.limit or None,
        standard_schema=args.standard_schema,
    )

    start_time = time.time()
    with console.status("[cyan]Extracting facts...[/cyan]"):
        tally = pipeline.run(entries)

    display_final_stats(tally, time.time() - start_time)

    return tally.exit_code


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        console.print()
        console.print("[yellow]Interrupted by user[/yellow]")
        sys.exit(1)
