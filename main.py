"""CLI entrypoint for the past-paper question pipeline."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict

from dotenv import load_dotenv

from cache import QuestionCache
from search import PastPaperSearch
from tutor_client import generate_tutor_response


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(
        description="Search, refresh and browse Grade 12 Physical Sciences past-paper questions"
    )
    parser.add_argument(
        "command",
        choices=["search", "refresh", "papers", "ask"],
        help=(
            "'search': query cached/backup questions. "
            "'refresh': scrape every source now and fill the cache. "
            "'papers': list discovered past-paper documents. "
            "'ask': search for context, then ask the OpenAI tutor."
        ),
    )
    parser.add_argument("text", nargs="?", default="", help="Query or question text")
    parser.add_argument("--topic", default="", help="Topic or paper filter, e.g. 'mechanics' or 'P2'")
    parser.add_argument(
        "--refresh-first",
        action="store_true",
        help="Run a synchronous refresh before searching so live results are used",
    )
    return parser.parse_args(argv)


def run(args: argparse.Namespace, searcher: PastPaperSearch) -> dict:
    """Execute one command and return a JSON-serializable result."""
    if args.command == "refresh":
        searcher.refresh(args.topic)
        entry = searcher.cache.get(args.topic)
        count = len(entry.payload) if entry is not None else 0
        logging.info("Refresh finished: topic=%r records=%s", args.topic, count)
        return {"topic": args.topic, "records": count}

    if args.command == "papers":
        links = searcher.list_papers(args.topic)
        return {"topic": args.topic, "papers": [asdict(link) for link in links]}

    if args.command == "ask" and not args.text:
        raise SystemExit("ask requires question text")

    if args.refresh_first:
        searcher.refresh(args.topic)

    results = searcher.search(args.text, args.topic)
    payload: dict = {
        "query": args.text,
        "topic": args.topic,
        "results": [record.to_dict() for record in results],
    }

    if args.command == "ask":
        payload["answer"] = generate_tutor_response(args.text, args.topic, results)

    return payload


def main(argv: list[str] | None = None) -> None:
    """Initialize config and execute the requested command."""
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = parse_args(argv)

    # Foreground commands should not race a background scrape on exit.
    searcher = PastPaperSearch(cache=QuestionCache(), refresh_on_miss=False)
    result = run(args, searcher)
    json.dump(result, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
