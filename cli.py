"""
lambdacost CLI.

Usage
-----
lambdacost analyze my-function
lambdacost analyze my-function --profile prod --since "2 hours ago" --timeout 120
lambdacost analyze my-function --percentile 0.5 --percentile 0.95 --json-logs
lambdacost version
"""

from __future__ import annotations

import argparse
from typing import List, Optional

import runner
from version import ENGINE_NAME, ENGINE_VERSION


def cmd_analyze(args: argparse.Namespace) -> int:
    return runner.run_from_args(args)


def cmd_version(args: argparse.Namespace) -> int:  # pylint: disable=unused-argument
    print(f"ENGINE_NAME={ENGINE_NAME}")
    print(f"ENGINE_VERSION={ENGINE_VERSION}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="lambdacost", description="Lambda memory/cost analyzer")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("analyze", help="Analyze the REPORT logs of a Lambda function.")
    runner.add_analyze_arguments(sp)
    sp.set_defaults(func=cmd_analyze)

    sp = sub.add_parser("version", help="Print the analyzer version and exit.")
    sp.set_defaults(func=cmd_version)

    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    raise SystemExit(args.func(args))


if __name__ == "__main__":
    main()
