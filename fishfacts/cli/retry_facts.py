"""
Retry fact extraction for specific episodes.

Deletes the existing facts.json and re-extracts with the strict four-fact
schema. Only standard episodes are accepted.

Usage:
    python -m fishfacts.cli.retry_facts <episode-id-or-number> [...]

Example:
    python -m fishfacts.cli.retry_facts 575 576 124785842
"""

import argparse
import sys
import time
from typing import List

from rich import box
from rich.table import Table

from fishfacts.cli.extract_facts import build_strategy, display_final_stats
from fishfacts.episodes.store import EpisodeStore
from fishfacts.execution.outcomes import OutcomeKind
from fishfacts.extraction.errors import ConfigurationError
from fishfacts.infrastructure.gemini_service import GeminiService
from fishfacts.infrastructure.logger import get_logger, get_shared_console
from fishfacts.pipeline.fact_pipeline import FactExtractionPipeline, RunTally

logger = get_logger(__name__)
console = get_shared_console()


def parse_args(argv: List[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Re-extract facts for specific standard episodes",
    )
    parser.add_argument(
        "identifiers",
        nargs="+",
        metavar="EPISODE",
        help="Feed id, itunes episode number, or title number (e.g. 575)"
    )
    parser.add_argument(
        "--mode",
        choices=["batch", "sync"],
        default="sync",
        help="Execution strategy (default: sync)"
    )
    return parser.parse_args(argv)


def display_retried_facts(store: EpisodeStore, tally: RunTally):
    """Show the facts written for each successfully retried episode."""
    for outcome in tally.outcomes:
        if outcome.kind != OutcomeKind.OK:
            continue
        record = store.load_record(outcome.episode_id)
        if record is None:
            continue

        table = Table(title=outcome.episode_id, box=box.SIMPLE)
        table.add_column("#", style="cyan")
        table.add_column("Presenter", style="magenta")
        table.add_column("Start")
        table.add_column("Fact")
        for fact in sorted(record.facts, key=lambda f: f.fact_number):
            presenter = f"{fact.presenter} (guest)" if fact.guest else fact.presenter
            table.add_row(str(fact.fact_number), presenter, fact.start_time, fact.fact)
        console.print(table)


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)

    console.rule("[bold blue]Retry Fact Extraction[/bold blue]")
    console.print()

    try:
        service = GeminiService()
    except ConfigurationError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        return 1

    store = EpisodeStore()
    pipeline = FactExtractionPipeline(
        store,
        strategy=build_strategy(args.mode, service),
        force=True,
    )

    start_time = time.time()
    tally = pipeline.retry_episodes(args.identifiers)
    display_retried_facts(store, tally)
    display_final_stats(tally, time.time() - start_time)

    return tally.exit_code


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        console.print()
        console.print("[yellow]Interrupted by user[/yellow]")
        sys.exit(1)
