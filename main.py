"""DeepResearch - iterative web research tool

Simple CLI for running a multi-round research question.
"""

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

from deepresearch.api.deps import build_orchestrator
from deepresearch.config import settings
from deepresearch.exceptions import DeepResearchError
from deepresearch.models.events import ProgressEvent
from deepresearch.models.research import ResearchReport
from deepresearch.services.logger import logger


def print_progress(event: ProgressEvent) -> None:
    print(f"[progress] {event.message}", flush=True)


def save_report(report: ResearchReport, output_dir: str | Path) -> Path:
    """Write the consolidated analysis to a timestamped text file."""
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    output_file = directory / f"research_result_{datetime.now().strftime('%Y%m%d_%H%M%S')}.txt"
    output_file.write_text(report.analysis, encoding="utf-8")
    return output_file


async def run_research(question: str, depth: int) -> int:
    """Run research on the given question and return the process exit code."""
    logger.info(f"Starting deep research: {question}")
    print(f'Starting deep research on "{question}" (depth: {depth})...')

    try:
        orchestrator = build_orchestrator()
        report = await orchestrator.run(question, question, depth, on_progress=print_progress)
    except (DeepResearchError, ValueError) as exc:
        print(f"Error: {exc}")
        logger.error(f"Deep research error: {exc}")
        return 1

    if not report.succeeded:
        print(f"Research failed: {report.error}")
        return 1

    print(f"\n{'=' * 12} Deep research result {'=' * 12}\n")
    print(report.analysis)

    output_file = save_report(report, settings.report_dir)
    print(f"\nResult saved to file: {output_file}")

    print(f"\n{'=' * 12} Search history {'=' * 12}\n")
    for record in report.search_history:
        print(f'Round {record.round}: "{record.query}"')

    logger.info(f"Deep research complete: {question}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="DeepResearch iterative research tool")
    parser.add_argument("question", help="Research question")
    parser.add_argument(
        "depth",
        nargs="?",
        type=int,
        default=settings.research_default_depth,
        help=f"Number of research rounds ({settings.research_min_depth}-{settings.research_max_depth})",
    )

    args = parser.parse_args(argv)

    return asyncio.run(run_research(args.question, args.depth))


if __name__ == "__main__":
    sys.exit(main())
