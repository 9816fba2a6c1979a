#!/usr/bin/env python3
"""
Drive the childguard API through its demo scenarios.

Runs each preset once for a subject and prints the classification and the
timeline of side effects, then lists the subject's open alerts.

Usage examples:
  - Against a local backend:
      python scripts/run_scenarios.py --base-url http://localhost:8000 --subject-id 1
  - Only some scenarios:
      python scripts/run_scenarios.py --base-url http://localhost:8000 --subject-id 1 \
          --scenario danger_freeze --scenario geofence_breach
  - The whole demo in a single request:
      python scripts/run_scenarios.py --base-url http://localhost:8000 --subject-id 1 --full-demo
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

import requests


SCENARIOS = ["normal", "playing", "danger_struggle", "danger_freeze", "geofence_breach", "sos"]


def api_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def post_json(base_url: str, path: str, payload: dict) -> dict:
    r = requests.post(api_url(base_url, path), json=payload, timeout=30)
    if r.status_code >= 300:
        raise RuntimeError(f"{path} -> HTTP {r.status_code}: {r.text}")
    return r.json()


def describe_step(step: dict) -> str:
    extra = {k: v for k, v in step.items() if k not in ("step", "result")}
    return f"{step['step']} {json.dumps(extra)}" if extra else step["step"]


def run_one(base_url: str, subject_id: int, scenario: str, coordinates: Optional[List[float]]) -> None:
    payload = {"subject_id": subject_id, "coordinates": coordinates}
    body = post_json(base_url, f"simulate/scenario/{scenario}", payload)
    c = body["classification"]
    print(f"\n== {scenario}: {body['scenario_description']}")
    print(f"   -> {c['status_label']} ({c['confidence_percentage']}%)")
    for step in body["timeline"]:
        print(f"   - {describe_step(step)}")


def run_full_demo(base_url: str, subject_id: int, coordinates: Optional[List[float]]) -> None:
    body = post_json(base_url, "simulate/full-demo", {"subject_id": subject_id, "coordinates": coordinates})
    for entry in body["scenarios"]:
        if entry.get("error"):
            print(f"{entry['scenario']:<16} ERROR {entry['error']}")
        else:
            print(f"{entry['scenario']:<16} {entry['status']:<8} {entry['confidence']:>5}%  alerts={entry['alerts_triggered']}")


def print_open_alerts(base_url: str, subject_id: int) -> None:
    r = requests.get(api_url(base_url, "alerts/"), params={"subject_id": subject_id, "resolved": "false"}, timeout=15)
    r.raise_for_status()
    alerts = r.json()
    print(f"\n{len(alerts)} open alerts")
    for a in alerts[:10]:
        print(f"   [{a['severity']}] {a['type']}: {a['message']}")


def main() -> None:
    ap = argparse.ArgumentParser(description="Run childguard demo scenarios against the API")
    ap.add_argument("--base-url", required=True, help="API base URL (e.g., http://localhost:8000)")
    ap.add_argument("--subject-id", type=int, required=True)
    ap.add_argument("--scenario", action="append", choices=SCENARIOS, help="Repeatable; default runs all")
    ap.add_argument("--lon", type=float, help="Longitude to report with the sample")
    ap.add_argument("--lat", type=float, help="Latitude to report with the sample")
    ap.add_argument("--full-demo", action="store_true", help="Use the single full-demo endpoint")
    args = ap.parse_args()

    coordinates = None
    if args.lon is not None and args.lat is not None:
        coordinates = [args.lon, args.lat]

    try:
        if args.full_demo:
            run_full_demo(args.base_url, args.subject_id, coordinates)
        else:
            for scenario in args.scenario or SCENARIOS:
                run_one(args.base_url, args.subject_id, scenario, coordinates)
        print_open_alerts(args.base_url, args.subject_id)
    except (requests.RequestException, RuntimeError) as exc:
        print(f"Scenario run failed: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
