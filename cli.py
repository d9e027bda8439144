from __future__ import annotations

import argparse
import json
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Service Discovery Observer CLI")
    p.add_argument("--api", default="http://127.0.0.1:8095", help="Diagnostic server base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("status", help="Show the diagnostic status text")

    s_eps = sub.add_parser("endpoints", help="List discovered endpoints")
    s_eps.add_argument("--observer-type", help="Only endpoints from this observer type")
    s_eps.add_argument("--monitor-type", help="Only endpoints with this label-declared monitor type")

    s_ep = sub.add_parser("endpoint", help="Show one endpoint")
    s_ep.add_argument("endpoint_id")

    sub.add_parser("observers", help="List observers and their state")

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    try:
        if args.cmd == "status":
            r = requests.get(f"{base}/", timeout=10)
            print(r.text, end="")
            return 0 if r.ok else 1

        if args.cmd == "endpoints":
            params = {}
            if args.observer_type:
                params["observer_type"] = args.observer_type
            if args.monitor_type:
                params["monitor_type"] = args.monitor_type
            r = requests.get(f"{base}/endpoints", params=params, timeout=10)
            _print(r.json())
            return 0 if r.ok else 1

        if args.cmd == "endpoint":
            r = requests.get(f"{base}/endpoints/{args.endpoint_id}", timeout=10)
            _print(r.json())
            return 0 if r.ok else 1

        if args.cmd == "observers":
            r = requests.get(f"{base}/observers", timeout=10)
            _print(r.json())
            return 0 if r.ok else 1
    except requests.ConnectionError:
        print(f"Could not reach diagnostic server at {base}", file=sys.stderr)
        return 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
