"""Command line entry for running ResiSync analyses and the API server."""

import argparse
import json
import logging
from pathlib import Path

from resisync import (
    InsightCache,
    Trip,
    UserProfile,
    analyze_compliance,
    get_destination_insights,
    parse_travel_text,
)


def load_trips(path: Path) -> list:
    data = json.loads(path.read_text())
    return [Trip.from_dict(item) for item in data]


def load_profile(path: Path) -> UserProfile:
    return UserProfile.from_dict(json.loads(path.read_text()))


def _cmd_analyze(args: argparse.Namespace) -> str:
    trips = load_trips(args.trips_file)
    profile = load_profile(args.profile)
    status = analyze_compliance(
        trips,
        profile,
        on_retry=lambda: logging.getLogger("resisync").warning(
            "Switching to fallback model, please wait..."
        ),
    )
    return json.dumps(status.to_dict(), indent=2)


def _cmd_parse(args: argparse.Namespace) -> str:
    return json.dumps(parse_travel_text(args.text), indent=2)


def _cmd_insights(args: argparse.Namespace) -> str:
    profile = UserProfile(
        nationality=args.nationality,
        current_location=args.location or "",
        travel_goals=args.goal or [],
    )
    return get_destination_insights(args.country, profile, InsightCache())


def _cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("resisync.api:create_app", factory=True, host=args.host, port=args.port)


def main() -> None:
    parser = argparse.ArgumentParser(description="ResiSync travel compliance tools.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Run compliance analysis on a JSON trip list")
    analyze.add_argument("trips_file", type=Path, help="JSON array of trips (camelCase keys)")
    analyze.add_argument("--profile", type=Path, required=True, help="JSON user profile")
    analyze.add_argument("--output", type=Path, help="Optional path to save the status JSON")
    analyze.set_defaults(handler=_cmd_analyze)

    parse = sub.add_parser("parse", help="Extract trip details from free text")
    parse.add_argument("text")
    parse.add_argument("--output", type=Path)
    parse.set_defaults(handler=_cmd_parse)

    insights = sub.add_parser("insights", help="Destination brief for a passport holder")
    insights.add_argument("country")
    insights.add_argument("--nationality", required=True)
    insights.add_argument("--location")
    insights.add_argument("--goal", action="append")
    insights.add_argument("--output", type=Path)
    insights.set_defaults(handler=_cmd_insights)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(handler=_cmd_serve)

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    result = args.handler(args)
    if result is None:
        return
    output = getattr(args, "output", None)
    if output:
        output.write_text(result)
        print(f"Result saved to {output}")
    else:
        print(result)


if __name__ == "__main__":
    main()
