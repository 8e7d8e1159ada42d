"""
Command-line interface for the Smart Task Manager.

Usage:
    python -m app classify --title "Fix server" --description "Urgent bug"
    python -m app serve [--host HOST] [--port PORT]
"""

import argparse
import json
import sys
from typing import List, Optional

from app.services.task_classifier import classify_task


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="smart-task-manager",
        description="Smart Task Manager CLI - classify tasks or run the API server"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    classify_parser = subparsers.add_parser(
        "classify",
        help="Classify a task and print the result as JSON"
    )
    classify_parser.add_argument(
        "--title",
        "-t",
        type=str,
        required=True,
        help="Task title"
    )
    classify_parser.add_argument(
        "--description",
        "-d",
        type=str,
        default="",
        help="Task description (default: empty)"
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP API with uvicorn"
    )
    serve_parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Interface to bind (default: 0.0.0.0)"
    )
    serve_parser.add_argument(
        "--port",
        "-p",
        type=int,
        default=None,
        help="Port to listen on (default: PORT from env or 3000)"
    )

    return parser


def classify_command(args: argparse.Namespace) -> int:
    """Print the classification for the given title and description."""
    result = classify_task(args.title, args.description)
    print(json.dumps(result.to_record(), indent=2))
    return 0


def serve_command(args: argparse.Namespace) -> int:
    """
    Start the API server.

    Returns:
        int: Exit code (0 for clean shutdown, 1 for configuration error)
    """
    import uvicorn

    from app.config import get_settings

    try:
        settings = get_settings()
    except ValueError as e:
        print(f"Configuration error: {e}")
        print("\nMake sure you have a .env file with:")
        print("  SUPABASE_URL=https://your-project.supabase.co")
        print("  SUPABASE_KEY=your_anon_key")
        return 1

    port = args.port if args.port is not None else settings.port
    uvicorn.run("app.main:app", host=args.host, port=port, log_level=settings.log_level.lower())
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "classify":
        return classify_command(args)
    elif args.command == "serve":
        return serve_command(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
