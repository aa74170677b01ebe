"""Lightweight REST client for the rosterocr API."""

from __future__ import annotations

import argparse
import json
import time
from pathlib import Path

import httpx


TERMINAL_STATES = {"completed", "requires_validation", "failed"}


def _content_type(path: Path) -> str:
    return "image/png" if path.suffix.lower() == ".png" else "image/jpeg"


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the rosterocr REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000")
    parser.add_argument("images", type=Path, nargs="*", help="Screenshots to upload")
    parser.add_argument("--scope", default="default", help="Scope identifier for the upload")
    parser.add_argument("--backend", default=None, help="Extraction backend selector")
    parser.add_argument("--ai", action="store_true", help="Request AI-assisted extraction")
    parser.add_argument("--poll-interval", type=float, default=1.0, help="Seconds between status checks")
    parser.add_argument("--timeout", type=float, default=300.0, help="Give up polling after this many seconds")
    parser.add_argument("--list-uploads", action="store_true", help="List recent uploads and exit")
    parser.add_argument("--get-upload", metavar="UPLOAD_ID", help="Fetch a specific upload and exit")
    parser.add_argument("--cancel", metavar="UPLOAD_ID", help="Request cancellation of an upload")
    parser.add_argument("--players", action="store_true", help="List stored players for --scope and exit")
    args = parser.parse_args()

    with httpx.Client(base_url=args.base_url) as client:
        if args.list_uploads or args.get_upload or args.cancel or args.players:
            if args.list_uploads:
                resp = client.get("/uploads")
                resp.raise_for_status()
                print(json.dumps(resp.json(), indent=2))
            if args.get_upload:
                resp = client.get(f"/uploads/{args.get_upload}")
                if resp.status_code == 404:
                    raise SystemExit(f"upload {args.get_upload} not found")
                resp.raise_for_status()
                print(json.dumps(resp.json(), indent=2))
            if args.cancel:
                resp = client.post(f"/uploads/{args.cancel}/cancel")
                if resp.status_code == 404:
                    raise SystemExit(f"upload {args.cancel} not found")
                resp.raise_for_status()
                print(json.dumps(resp.json(), indent=2))
            if args.players:
                resp = client.get(f"/scopes/{args.scope}/players")
                resp.raise_for_status()
                print(json.dumps(resp.json(), indent=2))
            return

        if not args.images:
            raise SystemExit("at least one image is required unless using --list-uploads/--get-upload/--cancel/--players")

        files = [
            ("images", (path.name, path.read_bytes(), _content_type(path)))
            for path in args.images
        ]
        data = {"use_ai": "true" if args.ai else "false"}
        if args.backend:
            data["backend"] = args.backend
        resp = client.post(f"/scopes/{args.scope}/uploads", files=files, data=data)
        if resp.status_code == 400:
            raise SystemExit(f"upload rejected: {resp.json().get('detail')}")
        resp.raise_for_status()
        upload_id = resp.json()["upload_id"]
        print(f"Queued upload {upload_id}")

        deadline = time.monotonic() + args.timeout
        while True:
            resp = client.get(f"/uploads/{upload_id}")
            resp.raise_for_status()
            job = resp.json()
            if job["state"] in TERMINAL_STATES:
                break
            if time.monotonic() > deadline:
                raise SystemExit(f"upload {upload_id} still {job['state']} after {args.timeout:.0f}s")
            time.sleep(args.poll_interval)

        print(f"Upload {upload_id} finished: {job['state']}")
        print(json.dumps(job.get("result"), indent=2))


if __name__ == "__main__":
    main()
