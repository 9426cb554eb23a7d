#!/usr/bin/env python3
"""
Loom's Gap Runner

Runs a competitive backlink gap analysis from the command line.

Usage:
    # Set environment variables first:
    export AHREFS_API_TOKEN=your_token

    # Run analysis (auto-discovered competitors):
    python scripts/run_gap_analysis.py sc-domain:example.com

    # With options:
    python scripts/run_gap_analysis.py https://www.example.com/ \
        --country gb \
        --competitor rival-one.com \
        --competitor rival-two.com \
        --json
"""

import asyncio
import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

TOP_GAPS_SHOWN = 20


def print_outcome(outcome) -> None:
    """Human-readable summary of a gap analysis outcome."""
    print("\n" + "="*70)

    if not outcome.success:
        print("LOOM'S GAP ANALYSIS FAILED")
        print("="*70)
        print(f"Reason:  {outcome.failure.value}")
        print(f"Message: {outcome.message}")
        print("="*70 + "\n")
        return

    result = outcome.result
    print("LOOM'S GAP ANALYSIS COMPLETE")
    print("="*70)
    print(f"Domain:            {result.user_domain}")
    print(f"Competitors:       {', '.join(c.domain for c in result.competitors)}")
    print(f"Coverage:          {result.coverage.analyzed}/{result.coverage.requested}")
    if result.coverage.failed:
        print(f"  ⚠ Unavailable:   {', '.join(result.coverage.failed)}")
    print(f"Gap domains:       {result.total_gaps}")
    print(f"High authority:    {result.high_authority_gaps}")
    print(f"Medium authority:  {result.medium_authority_gaps}")
    print(f"Thread Starvation: {result.thread_starvation.value}")
    print(f"Duration:          {result.elapsed_seconds:.1f} seconds"
          f"{' (cached)' if result.from_cache else ''}")

    if result.gap_domains:
        print(f"\nTop {min(TOP_GAPS_SHOWN, result.total_gaps)} gaps by Thread Resonance:")
        for gap in result.gap_domains[:TOP_GAPS_SHOWN]:
            print(
                f"  {gap.thread_resonance:>3}  DR {gap.domain_rating:>5.1f}  "
                f"{gap.domain:<40} ({gap.competitors_linked_count} competitors)"
            )
    print("="*70 + "\n")


async def run_gap_analysis(
    site_url: str,
    country: str = "us",
    competitors=None,
    refresh: bool = False,
    use_cache: bool = True,
):
    """Run the gap pipeline, using the database cache when enabled."""
    from src.cache.gap_cache import get_gap_cache
    from src.collector.client import AhrefsError, create_client
    from src.database import get_db_context, init_db
    from src.gap.orchestrator import GapAnalysisConfig, GapAnalysisOrchestrator
    from src.utils.config import get_settings

    load_dotenv()
    settings = get_settings()

    try:
        client = create_client(settings)
    except AhrefsError as e:
        print(f"ERROR: {e}")
        print("\nSet it with:")
        print("  export AHREFS_API_TOKEN=your_token")
        return None

    config = GapAnalysisConfig.from_settings(settings)

    async with client:
        if not use_cache:
            orchestrator = GapAnalysisOrchestrator(client, config=config)
            return await orchestrator.analyze(
                site_url, country=country, manual_competitors=competitors, refresh=refresh,
            )

        init_db()
        with get_db_context() as db:
            orchestrator = GapAnalysisOrchestrator(client, cache=get_gap_cache(db), config=config)
            return await orchestrator.analyze(
                site_url, country=country, manual_competitors=competitors, refresh=refresh,
            )


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run Loom's Gap competitive backlink analysis"
    )
    parser.add_argument(
        "site",
        help="Site to analyze (URL, hostname, or sc-domain:example.com)"
    )
    parser.add_argument(
        "--country",
        default="us",
        help="Country for competitor discovery (default: us)"
    )
    parser.add_argument(
        "--competitor",
        action="append",
        default=None,
        help="Manual competitor domain (repeatable; skips discovery)"
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Ignore any cached result"
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Do not read or write the database cache"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full result payload as JSON"
    )

    args = parser.parse_args()

    outcome = asyncio.run(run_gap_analysis(
        site_url=args.site,
        country=args.country,
        competitors=args.competitor,
        refresh=args.refresh,
        use_cache=not args.no_cache,
    ))

    if outcome is None:
        sys.exit(1)

    if args.json:
        print(json.dumps(outcome.to_dict(), indent=2))
    else:
        print_outcome(outcome)

    if not outcome.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
