#!/usr/bin/env python3
"""
CORS check for a running Retail POS API.

Usage: python scripts/check_cors.py [base_url] [allowed_origin ...]
"""

import sys
from typing import Dict, List, Optional, Tuple

import requests

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_ALLOWED = ["http://localhost:3000"]
BLOCKED = ["https://malicious-site.com", "http://evil.com"]

# Preflights the POS frontend sends: sale creation, payment updates, refunds
PREFLIGHT_METHODS = ["POST", "PATCH", "DELETE"]


def build_cases(allowed: List[str]) -> List[Tuple[Optional[str], bool]]:
    cases = [(origin, True) for origin in allowed]
    cases += [(origin, False) for origin in BLOCKED]
    cases.append((None, True))
    return cases


def check_origin(base_url: str, origin: Optional[str], should_be_allowed: bool) -> Dict:
    name = f"Origin: {origin or 'None (Direct)'}"
    try:
        preflight = {}
        if origin:
            for method in PREFLIGHT_METHODS:
                response = requests.options(
                    f"{base_url}/api/v1/sales",
                    headers={
                        "Origin": origin,
                        "Access-Control-Request-Method": method,
                        "Access-Control-Request-Headers": "Authorization,Content-Type"
                    },
                    timeout=10
                )
                preflight[method] = response.status_code

        headers = {"Origin": origin} if origin else {}
        response = requests.get(f"{base_url}/api/v1/health", headers=headers, timeout=10)
        allow_origin = response.headers.get("Access-Control-Allow-Origin")

        allowed = allow_origin in (origin, "*") or (origin is None and response.status_code == 200)
        if should_be_allowed and origin:
            allowed = allowed and all(code == 200 for code in preflight.values())

        passed = allowed == should_be_allowed
        return {
            "name": name,
            "status": "PASS" if passed else "FAIL",
            "message": ("allowed" if allowed else "blocked") + (
                "" if passed else f" (expected {'allowed' if should_be_allowed else 'blocked'})"
            ),
            "preflight": preflight,
            "allow_origin": allow_origin
        }
    except requests.exceptions.RequestException as e:
        return {"name": name, "status": "ERROR", "message": f"Request failed: {e}"}


def main(argv: List[str]) -> int:
    base_url = argv[1] if len(argv) > 1 else DEFAULT_BASE_URL
    allowed = argv[2:] or DEFAULT_ALLOWED

    print(f"Checking CORS configuration for {base_url}")
    results = [check_origin(base_url, origin, expected) for origin, expected in build_cases(allowed)]

    for result in results:
        print(f"[{result['status']}] {result['name']}: {result['message']}")
        if result.get("preflight"):
            print(f"    preflight: {result['preflight']}")

    failed = sum(1 for r in results if r["status"] != "PASS")
    print(f"\n{len(results) - failed}/{len(results)} checks passed")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
