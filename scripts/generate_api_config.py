#!/usr/bin/env python3
"""Script to generate an API integration config from a documentation URL."""

import argparse
import sys
from pathlib import Path

# Add src to path for local development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from integration_agent import AgentSettings, run_integration_agent
from integration_agent.agent import config_to_json
from integration_agent.orchestration import CancellationToken, ToolFailurePolicy


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Generate an API integration config from a page of API documentation."
    )
    parser.add_argument(
        "url",
        type=str,
        help="URL of the API documentation page",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Maximum completion requests (default: AGENT_MAX_ITERATIONS or 20)",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Model name (default: OPENAI_MODEL or gpt-4o-mini)",
    )
    parser.add_argument(
        "--no-headless",
        action="store_true",
        help="Run browser with visible UI",
    )
    parser.add_argument(
        "--user-data-dir",
        type=str,
        default=None,
        help="Browser profile directory to reuse between runs",
    )
    parser.add_argument(
        "--soft-tool-failures",
        action="store_true",
        help="Report tool failures to the model instead of aborting the run",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Abort the run after this many seconds",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Write the config JSON to this file instead of stdout",
    )

    args = parser.parse_args()

    overrides = {
        "model": args.model,
        "max_iterations": args.max_iterations,
        "browser_user_data_dir": args.user_data_dir,
    }
    if args.no_headless:
        overrides["headless"] = False
    if args.soft_tool_failures:
        overrides["tool_failure_policy"] = ToolFailurePolicy.REPORT_TO_MODEL

    try:
        settings = AgentSettings.from_env(**overrides)
        settings.require_api_key()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    cancel_token = CancellationToken.with_timeout(args.timeout) if args.timeout else None
    result = run_integration_agent(args.url, settings=settings, cancel_token=cancel_token)

    if not result.success:
        print("Config generation failed:", file=sys.stderr)
        for error in result.errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    output = config_to_json(result.config)
    if args.output:
        Path(args.output).write_text(output + "\n", encoding="utf-8")
        print(f"Wrote config to {args.output}", file=sys.stderr)
    else:
        print(output)

    if result.run is not None:
        print(
            f"Completed in {result.run.iterations} tool iterations "
            f"({result.run.completion_requests} completion requests)",
            file=sys.stderr,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
