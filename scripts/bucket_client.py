"""
Bucket Stack Client
===================
Calls the bucket API and reports status, body and latency for each call.

Usage:
  # Start the API first: python scripts/serve_local.py
  python scripts/bucket_client.py up --bucket my-bucket --message "hi"
  python scripts/bucket_client.py up --bucket my-bucket --repeat 3   # idempotency check
  python scripts/bucket_client.py refresh --bucket my-bucket
  python scripts/bucket_client.py destroy --bucket my-bucket
  python scripts/bucket_client.py cancel --bucket my-bucket

With --repeat, every response must match the first one; a different website
URL on a repeated `up` means the stack was not left as declared.
"""
from __future__ import annotations

import argparse
import os
import sys
import time
from dataclasses import dataclass, field
from typing import List

import requests

API_URL = os.environ.get("BUCKET_API_URL", "http://localhost:8080")

ROUTES = {
    "up": ("POST", "/bucket/"),
    "destroy": ("DELETE", "/bucket/"),
    "refresh": ("POST", "/bucket/refresh"),
    "cancel": ("POST", "/bucket/cancel"),
}

# Pulumi operations take minutes, not seconds.
TIMEOUT_SECONDS = 900


@dataclass
class CallResult:
    status: int
    body: dict
    latency_ms: float = 0.0


@dataclass
class ClientReport:
    results: List[CallResult] = field(default_factory=list)

    def add(self, result: CallResult) -> None:
        self.results.append(result)

    @property
    def consistent(self) -> bool:
        return all(
            (r.status, r.body) == (self.results[0].status, self.results[0].body)
            for r in self.results
        )

    def print_summary(self) -> None:
        print("\n" + "=" * 55)
        print("  Bucket Stack API")
        print("=" * 55)
        for i, r in enumerate(self.results, 1):
            text = r.body.get("message") or r.body.get("error")
            print(f"  #{i}  {r.status}  {r.latency_ms / 1000:.1f}s  {text}")
        if len(self.results) > 1:
            print()
            print(f"  Consistent:  {'PASS' if self.consistent else 'FAIL'}")
        print("=" * 55)


def call(action: str, bucket: str, message: str, api_url: str = API_URL) -> CallResult:
    method, path = ROUTES[action]
    start = time.time()
    resp = requests.request(
        method,
        api_url.rstrip("/") + path,
        json={"bucketName": bucket, "customMessage": message},
        timeout=TIMEOUT_SECONDS,
    )
    elapsed = (time.time() - start) * 1000
    try:
        body = resp.json()
    except ValueError:
        body = {"error": resp.text}
    return CallResult(status=resp.status_code, body=body, latency_ms=elapsed)


def run(action: str, bucket: str, message: str, repeat: int, api_url: str) -> int:
    print(f"\n{action} {bucket} → {api_url}")
    report = ClientReport()
    for _ in range(repeat):
        try:
            report.add(call(action, bucket, message, api_url))
        except requests.RequestException as e:
            print(f"  Request failed: {e}")
            return 2
    report.print_summary()
    if not report.consistent:
        return 1
    return 0 if report.results[-1].status == 200 else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Bucket stack API client")
    parser.add_argument("action", choices=sorted(ROUTES), help="Lifecycle verb")
    parser.add_argument("--bucket", required=True, help="Bucket name")
    parser.add_argument("--message", default="", help="Custom message for index.html")
    parser.add_argument("--repeat", type=int, default=1, help="Send the same request N times")
    parser.add_argument("--api-url", default=API_URL, help="Base URL of the API")
    args = parser.parse_args()

    sys.exit(run(args.action, args.bucket, args.message, args.repeat, args.api_url))
