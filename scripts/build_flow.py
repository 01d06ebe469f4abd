#!/usr/bin/env python3
import argparse
import os
import sys
import time
from typing import Any, Dict, Optional

import httpx

BASE_URL = os.getenv("PWA2APK_BASE_URL", "http://127.0.0.1:8000")
POLL_SECONDS = float(os.getenv("PWA2APK_POLL_SECONDS", "2.0"))
MAX_TOTAL_SECONDS = int(os.getenv("PWA2APK_MAX_SECONDS", "1800"))
REQUEST_TIMEOUT_SECONDS = int(os.getenv("PWA2APK_REQUEST_TIMEOUT", "20"))

TERMINAL_STATUSES = ("COMPLETED", "FAILED")

LEVEL_MARKERS = {
    "info": " ",
    "success": "+",
    "warn": "!",
    "error": "x",
}


def request_json(
    client: httpx.Client,
    method: str,
    path: str,
    payload: Optional[Dict[str, Any]] = None,
    params: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    try:
        resp = client.request(method, path, json=payload, params=params)
    except httpx.HTTPError as e:
        raise RuntimeError(f"Network error: {e}")
    if resp.status_code >= 400:
        raise RuntimeError(f"HTTP {resp.status_code} {resp.reason_phrase}: {resp.text[:1000]}")
    if not resp.content:
        return {}
    return resp.json()


def configure(client: httpx.Client, token: str, owner: str, repo: str) -> None:
    res = request_json(client, "PUT", "/api/config", {"token": token, "owner": owner, "repo": repo})
    print(f"Configured {res.get('owner')}/{res.get('repo')} (token {res.get('token_hint')})")


def print_log(entry: Dict[str, Any]) -> None:
    marker = LEVEL_MARKERS.get(entry.get("level") or "info", " ")
    print(f"[{entry.get('timestamp', '')}] {marker} {entry.get('message', '')}")


def run_flow(client: httpx.Client, url: str, max_seconds: int) -> int:
    session = request_json(client, "POST", "/api/builds", {"url": url})
    cursor: Optional[int] = None
    deadline = time.time() + max_seconds

    while time.time() < deadline:
        params = {"after": cursor} if cursor is not None else None
        res = request_json(client, "GET", "/api/builds/current/logs", params=params)
        for entry in res.get("logs") or []:
            print_log(entry)
        cursor = res.get("cursor", cursor)

        session = request_json(client, "GET", "/api/builds/current")
        if session.get("status") in TERMINAL_STATUSES:
            break
        time.sleep(POLL_SECONDS)
    else:
        print(f"Client timeout reached (max {max_seconds}s).", file=sys.stderr)
        return 2

    # drain anything logged between the last two polls
    res = request_json(client, "GET", "/api/builds/current/logs", params={"after": cursor or 0})
    for entry in res.get("logs") or []:
        print_log(entry)

    if session.get("status") == "FAILED":
        return 1
    if session.get("download_url"):
        print(f"Download: {session['download_url']}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Start a PWA2APK Studio build for a web app URL and follow its log."
    )
    parser.add_argument("url", help="Web app URL (http/https)")
    parser.add_argument("--base-url", default=BASE_URL)
    parser.add_argument("--token", default=os.getenv("PWA2APK_GITHUB_TOKEN"))
    parser.add_argument("--owner", default=os.getenv("PWA2APK_GITHUB_OWNER"))
    parser.add_argument("--repo", default=os.getenv("PWA2APK_GITHUB_REPO"))
    parser.add_argument("--reset", action="store_true", help="Reset a finished session before starting")
    parser.add_argument("--max-seconds", type=int, default=MAX_TOTAL_SECONDS)
    args = parser.parse_args()

    with httpx.Client(base_url=args.base_url, timeout=REQUEST_TIMEOUT_SECONDS) as client:
        if args.token and args.owner and args.repo:
            configure(client, args.token, args.owner, args.repo)
        if args.reset:
            request_json(client, "POST", "/api/builds/current/reset")
        try:
            return run_flow(client, args.url, args.max_seconds)
        except RuntimeError as e:
            print(str(e), file=sys.stderr)
            return 1


if __name__ == "__main__":
    raise SystemExit(main())
