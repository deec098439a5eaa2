#!/usr/bin/env python3
"""Run a quick read-only booking smoke test against the live vendor API."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from typing import Any, Dict

from fastapi.testclient import TestClient

from loft_booking.config import get_settings
from loft_booking.main import app


def _dump(payload: Any) -> str:
    try:
        return json.dumps(payload, indent=2, ensure_ascii=False)
    except TypeError:
        return str(payload)


def run_smoke_test(username: str, password: str, day: date) -> Dict[str, Any]:
    """Log in, open a booking session and list the slots for ``day``.

    Nothing is booked: the session stops before confirmation.
    """

    get_settings.cache_clear()
    settings = get_settings()
    if not settings.uschedule_app_key:
        raise RuntimeError("LOFT_USCHEDULE_APP_KEY is required for the smoke test.")
    print(f"Running smoke test against {', '.join(settings.host_urls)}")

    with TestClient(app) as client:
        response = client.post("/auth/login", json={"username": username, "password": password})
        if response.status_code != 200:
            raise RuntimeError(f"Login failed ({response.status_code}): {response.text}")
        auth = response.json()
        headers = {"X-US-AuthToken": auth["token"]}
        print(f"Authenticated via {auth['host']}")

        response = client.post("/booking/sessions", headers=headers)
        if response.status_code != 200:
            raise RuntimeError(f"Opening a session failed ({response.status_code}): {response.text}")
        session = response.json()
        session_id = session["session_id"]
        print(f"Locations: {[loc['name'] for loc in session['locations']]}")
        print(f"Services: {[svc['name'] for svc in session['services']]}")

        if not session["services"]:
            raise RuntimeError("No services returned by the booking service.")
        client.post(
            f"/booking/sessions/{session_id}/service",
            json={"service_id": session["services"][0]["id"]},
            headers=headers,
        )
        response = client.post(
            f"/booking/sessions/{session_id}/date",
            json={"selected_date": day.isoformat()},
            headers=headers,
        )
        payload: Dict[str, Any] = response.json()["session"]

        print("\nAvailable slots:")
        print(_dump([slot["label"] for slot in payload["available_slots"]]))
        if payload["error_message"]:
            print(f"\nError: {payload['error_message']}")

        client.post("/auth/logout", headers=headers)

    return payload


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Log in to the booking service and list open simulator slots for a "
            "day. No booking is made."
        )
    )
    parser.add_argument("--username", required=True, help="Customer username.")
    parser.add_argument("--password", required=True, help="Customer password.")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=date.today(),
        help="Day to query, as YYYY-MM-DD (defaults to today).",
    )

    args = parser.parse_args(argv)

    try:
        run_smoke_test(args.username, args.password, args.date)
    except Exception as exc:  # pragma: no cover - manual diagnostic utility
        print(f"Smoke test failed: {exc}", file=sys.stderr)
        return 1

    print("\nSmoke test completed successfully.")
    return 0


if __name__ == "__main__":  # pragma: no cover - manual diagnostic utility
    raise SystemExit(main())
