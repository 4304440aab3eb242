"""CLI entrypoint for eventwire demos."""

from __future__ import annotations

from argparse import ArgumentParser

from eventwire.demo.runner import run_scenario


def main() -> None:
    parser = ArgumentParser(description="Run eventwire request/response demo scenarios.")
    parser.add_argument(
        "scenario",
        choices=["echo", "ping"],
        help="echo: a responder answers; ping: nobody answers and the request times out.",
    )
    parser.add_argument("--timeout", type=float, default=1.0, help="Request timeout in seconds.")
    parser.add_argument("--message", default="hello", help="Payload sent with the echo request.")
    args = parser.parse_args()

    result = run_scenario(args.scenario, timeout=args.timeout, message=args.message)
    if result.timed_out:
        print(f"Scenario {args.scenario}: request {result.result.value}")
    else:
        print(f"Scenario {args.scenario}: reply {result.result!r}")


if __name__ == "__main__":
    main()
