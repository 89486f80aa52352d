"""Command-line entry point.

Usage examples:
    # Score a message as a memory
    attune score "今日は本当に嬉しかった！ありがとう"

    # Classify how a message relates to the conversation
    attune context "それって何？"

    # Tier reachability
    attune status
"""

import argparse
import asyncio
import json
import logging
import sys

from attune.config import settings
from attune.context import analyze_context
from attune.errors import AttuneError
from attune.memory import KeywordDictionary, MemoryFactory, WeightEngine
from attune.orchestrator import TieredMemoryOrchestrator

logger = logging.getLogger(__name__)


def _score(args: argparse.Namespace) -> int:
    dictionary = None
    if settings.keyword_dictionary_path:
        dictionary = KeywordDictionary.load(settings.keyword_dictionary_path)
    factory = MemoryFactory(dictionary)
    memory = factory.create_memory(
        args.text,
        args.text,
        relationship_level=args.level,
        is_first_time=args.first,
    )
    output = memory.model_dump(mode="json")
    output["current_weight"] = WeightEngine().recalculate_weight(memory)
    print(json.dumps(output, ensure_ascii=False, indent=2))
    return 0


def _context(args: argparse.Namespace) -> int:
    print(analyze_context(args.text))
    return 0


def _status(args: argparse.Namespace) -> int:
    status = asyncio.run(TieredMemoryOrchestrator.get().get_system_status())
    print(status.model_dump_json(indent=2))
    return 0 if status.healthy else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="attune", description="Memory and relationship scoring engine"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    score = commands.add_parser("score", help="Create a memory from TEXT and print it as JSON")
    score.add_argument("text")
    score.add_argument(
        "--level", type=float, default=0.0, help="Relationship level 0-100 (default: 0)"
    )
    score.add_argument("--first", action="store_true", help="Mark as a first-time experience")
    score.set_defaults(handler=_score)

    context = commands.add_parser("context", help="Print the context type of TEXT")
    context.add_argument("text")
    context.set_defaults(handler=_context)

    status = commands.add_parser("status", help="Print per-tier status as JSON")
    status.set_defaults(handler=_status)
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )
    args = build_parser().parse_args(argv)
    try:
        return args.handler(args)
    except AttuneError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
