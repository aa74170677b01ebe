"""Command-line interface for extracting roster players from screenshots."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from rosterocr.config_loader import BACKEND_SELECTORS, PipelineSettings
from rosterocr.ingest.ai import AIExtractor, OpenAIProvider
from rosterocr.persistence import RosterStore
from rosterocr.pipeline import InvalidUploadError, process_upload


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract roster players from game screenshots")
    parser.add_argument("--log-level", default="INFO", help="Logging level (e.g., DEBUG, INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser("extract", help="Run the pipeline on local images")
    extract.add_argument("images", type=Path, nargs="+", help="Roster screenshots (PNG/JPEG)")
    extract.add_argument(
        "--backend",
        choices=BACKEND_SELECTORS,
        default=None,
        help="Text extraction backend (defaults to ROSTEROCR_BACKEND or local-engine)",
    )
    extract.add_argument("--ai", action="store_true", help="Try AI-assisted extraction first")
    extract.add_argument("--db", type=Path, default=None, help="SQLite store to reconcile into")
    extract.add_argument("--scope", default="local", help="Scope identifier used for reconciliation")
    extract.add_argument("--output", type=Path, default=None, help="Write the outcome JSON here")
    extract.add_argument("--load-profile", type=Path, default=None, help="Load settings JSON")
    extract.add_argument("--save-profile", type=Path, default=None, help="Save effective settings JSON")

    serve = subparsers.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--db", type=Path, default=None, help="SQLite database path")
    return parser.parse_args(argv)


def _run_extract(args: argparse.Namespace) -> int:
    settings = PipelineSettings.load(args.load_profile) if args.load_profile else PipelineSettings.from_env()
    settings = settings.with_overrides(
        backend=args.backend,
        ai_enabled=True if args.ai else None,
        db_path=str(args.db) if args.db else None,
    )
    if args.save_profile:
        settings.save(args.save_profile)
        print(f"Saved settings profile to {args.save_profile}")

    store = RosterStore(settings.db_path) if settings.db_path else None
    ai_extractor = None
    if settings.ai_enabled:
        ai_extractor = AIExtractor(OpenAIProvider(model=settings.ai_model), timeout=settings.ai_timeout)

    try:
        outcome = asyncio.run(
            process_upload(
                args.images,
                args.scope,
                settings=settings,
                store=store,
                ai_extractor=ai_extractor,
            )
        )
    except InvalidUploadError as exc:
        raise SystemExit(str(exc)) from exc

    payload = json.dumps(outcome.to_dict(), indent=2)
    if args.output:
        args.output.write_text(payload, encoding="utf-8")
        print(f"Wrote outcome to {args.output}")
    else:
        print(payload)

    if outcome.status == "completed":
        print(f"Inserted {outcome.inserted_count} players, updated {outcome.updated_count}")
        return 0
    if outcome.status == "requires_validation":
        print(f"{len(outcome.errors)} validation issues need manual correction")
        return 2
    print(f"Extraction failed: {outcome.reason}")
    return 1


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from rosterocr.api import create_app

    uvicorn.run(create_app(db_path=args.db), host=args.host, port=args.port)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.command == "serve":
        return _run_serve(args)
    return _run_extract(args)


if __name__ == "__main__":
    raise SystemExit(main())
