#!/usr/bin/env python3
"""
Run one proactive-call operation, either in-process against the local
database or remotely through the cron endpoint.

Examples:
    python scripts/run_trigger.py schedule
    python scripts/run_trigger.py process --call-type pre_arrival
    python scripts/run_trigger.py wakeup --remote http://localhost:8000 --secret $CRON_SECRET
"""

import argparse
import json
import os
import sys

import httpx

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from proactive_calls.triggers import OPERATIONS  # noqa: E402


def _run_local(operation: str, call_type: str | None) -> dict:
    from proactive_calls.config import config
    from proactive_calls.database import init_db, session_scope
    from proactive_calls.triggers import build_runtime, run_operation

    init_db()
    with session_scope() as db:
        return run_operation(operation, db, build_runtime(config), call_type=call_type)


def _run_remote(base_url: str, secret: str, operation: str, call_type: str | None, timeout: float) -> dict:
    params = {"type": operation}
    if call_type:
        params["call_type"] = call_type
    headers = {"Authorization": f"Bearer {secret}"} if secret else {}
    with httpx.Client(timeout=timeout) as client:
        response = client.post(f"{base_url.rstrip('/')}/cron/proactive-calls", params=params, headers=headers)
    return response.json()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Trigger a proactive-call operation")
    parser.add_argument("operation", choices=OPERATIONS)
    parser.add_argument("--call-type", default=None, help="Call-type filter for 'process' (e.g. pre_arrival)")
    parser.add_argument("--remote", default=None, help="API base URL; runs in-process when omitted")
    parser.add_argument("--secret", default=os.getenv("CRON_SECRET", ""), help="Cron bearer token for --remote")
    parser.add_argument("--timeout", type=float, default=300.0, help="HTTP timeout seconds (default: 300)")
    args = parser.parse_args(argv)

    if args.remote:
        result = _run_remote(args.remote, args.secret, args.operation, args.call_type, args.timeout)
    else:
        result = _run_local(args.operation, args.call_type)

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0 if result.get("success") else 1


if __name__ == "__main__":
    raise SystemExit(main())
