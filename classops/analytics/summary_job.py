"""Command-line entry point: import one year and print the headline tables."""

from __future__ import annotations

import argparse
import logging

from classops.analytics.aggregator import Aggregator
from classops.analytics.tables import ranking_frame, summary_frame
from classops.common.config import load_config
from classops.common.logging_setup import configure_logging
from classops.common.numeric import format_duration
from classops.ingest.ingestion_service import ImportService
from classops.ingest.sheets import SheetsClient

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import class sheets and summarise teacher performance.")
    parser.add_argument("--config", default="config/local.yaml", help="Path to YAML config.")
    parser.add_argument("--year", default=None, help="Academic year to import (defaults to dashboard.default_year).")
    parser.add_argument("--top-n", type=int, default=None, help="Teachers per leaderboard.")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    configure_logging(config.logging.level)
    year = args.year or config.dashboard.default_year

    client = SheetsClient(credentials_file=config.sheets.credentials_file)
    service = ImportService(client, config)
    result = service.load(year)

    aggregator = Aggregator(
        images=result.images,
        top_n=args.top_n or config.dashboard.top_n,
        chart_top_n=config.dashboard.chart_top_n,
    )
    tables = aggregator.run(result.records)
    summary = tables["summary"]

    print(f"Class summary for {year} ({result.fb_count} Fb / {result.app_count} App rows)")
    print(summary_frame(summary).to_string(float_format=lambda value: f"{value:,.2f}"))
    print(f"Total teaching time: {format_duration(summary.total_duration.total)}")
    for metric, ranking in tables["top_teachers"].items():
        print()
        print(f"Top teachers by {metric.replace('_', ' ')}")
        if ranking.top:
            print(ranking_frame(ranking).to_string(index=False))
        else:
            print("(no classes)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
