"""CLI entrypoint: fetch a collection, score rarity, print the rarest tokens."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from rarity_scan.models import CollectionSpec, ConfigError, RankedToken

DEFAULT_BASE_URL = "https://go-challenge.skip.money"
DEFAULT_COLLECTION = "azuki1"


def format_report(ranked: list[RankedToken], *, mode: str = "human") -> str:
    if mode == "json":
        return json.dumps([r.to_dict() for r in ranked], ensure_ascii=False)

    lines = [f"Top {len(ranked)} most rare tokens:"]
    for r in ranked:
        lines.append(f"Top {r.rank}: Token id {r.id}, Rarity {r.rarity}")
    return "\n".join(lines)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="rarity-scan",
        description="Rank the rarest tokens of a collection by attribute frequency",
    )
    parser.add_argument(
        "--base-url",
        default=os.environ.get("RARITY_BASE_URL", DEFAULT_BASE_URL),
        help="Metadata host (env: RARITY_BASE_URL)",
    )
    parser.add_argument(
        "--collection",
        default=os.environ.get("RARITY_COLLECTION", DEFAULT_COLLECTION),
        help="Collection path under the host (env: RARITY_COLLECTION)",
    )
    parser.add_argument("--count", type=int, default=100, help="Number of tokens in the collection (default: 100)")
    parser.add_argument("--workers", type=int, default=5, help="Concurrent fetch workers (default: 5)")
    parser.add_argument("--top", type=int, default=5, help="How many tokens to report (default: 5)")
    parser.add_argument("--timeout-sec", type=float, default=10.0, help="Per-request HTTP timeout in seconds (default: 10)")
    parser.add_argument(
        "--per-category",
        action="store_true",
        help="Count attribute values per (category, value) instead of by value alone",
    )
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output as JSON array")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging (HTTP requests and response bodies)")
    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    # per-token worker progress is shown by default
    logging.getLogger("rarity_scan").setLevel(logging.DEBUG if verbose else logging.INFO)


def main(argv: list[str] | None = None) -> None:
    from dotenv import load_dotenv

    load_dotenv()
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        spec = CollectionSpec(count=args.count, base_url=f"{args.base_url.rstrip('/')}/{args.collection}")
        if args.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {args.workers}")
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    from rarity_scan.pool import fetch_collection
    from rarity_scan.scoring import rank, score_all
    from rarity_scan.source import HttpMetadataSource

    with HttpMetadataSource(spec.base_url, timeout=args.timeout_sec) as source:
        stats = fetch_collection(
            spec,
            source,
            workers=args.workers,
            per_category=args.per_category,
        )

    ranked = rank(score_all(stats), args.top)
    print(format_report(ranked, mode="json" if args.json_mode else "human"))


if __name__ == "__main__":
    main()
