"""
Command line for inspecting audience rules.

Usage:
    python -m campaignhq.runtime describe --rules rules.json
    python -m campaignhq.runtime estimate --rules rules.json --population customers.json

Rules files hold a tree document; population files hold a JSON array of
customer records.
"""

import argparse
import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any, NoReturn

import anyio
import structlog
from pydantic import ValidationError

from campaignhq.config import get_settings
from campaignhq.core.fields import default_catalog
from campaignhq.core.summary import describe
from campaignhq.core.tree import RuleGroup, count_rules, depth, from_document
from campaignhq.evaluation.estimator import PopulationEstimator
from campaignhq.runtime.logs import configure_logging

logger = structlog.get_logger()


def _load_json(path: Path) -> Any:
    with path.open(encoding="utf-8") as f:
        return json.load(f)


def _load_rules(path: Path) -> RuleGroup:
    data = _load_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a rule group document")
    return from_document(data)


def _load_population(path: Path) -> list[dict[str, Any]]:
    data = _load_json(path)
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a JSON array of records")
    return data


def _describe(args: argparse.Namespace) -> None:
    tree = _load_rules(args.rules)
    logger.info("describing_rules", tree_id=tree.id, rules=count_rules(tree), depth=depth(tree))
    print(describe(tree, default_catalog()))


def _estimate(args: argparse.Namespace) -> None:
    tree = _load_rules(args.rules)
    population = _load_population(args.population)
    estimator = PopulationEstimator(population, default_catalog())
    size = anyio.run(estimator.estimate, tree)
    logger.info("audience_estimated", tree_id=tree.id, population=len(population), size=size)
    print(size)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="campaignhq",
        description="Inspect campaign audience rules.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    describe_cmd = commands.add_parser("describe", help="print a readable summary of a rule tree")
    describe_cmd.add_argument("--rules", type=Path, required=True)
    describe_cmd.set_defaults(handler=_describe)

    estimate_cmd = commands.add_parser("estimate", help="count the records a rule tree matches")
    estimate_cmd.add_argument("--rules", type=Path, required=True)
    estimate_cmd.add_argument("--population", type=Path, required=True)
    estimate_cmd.set_defaults(handler=_estimate)

    return parser


def run(argv: Sequence[str] | None = None) -> int:
    """Run one command. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    try:
        args.handler(args)
    except (OSError, ValueError) as e:
        event = "invalid_rules" if isinstance(e, ValidationError) else "command_failed"
        logger.error(event, command=args.command, error=str(e))
        return 1
    return 0


def main() -> NoReturn:
    """Main entry point."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    try:
        sys.exit(run())
    except KeyboardInterrupt:
        logger.info("interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
