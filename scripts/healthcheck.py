#!/usr/bin/env python3
"""NDI HR Health Check — verify a running API instance.

Checks:
  1. Backend API responds on /api/v1/health (HTTP 200, "healthy")
  2. Session-protected routes reject anonymous callers (/api/v1/auth/me → 401)
  3. SSL certificate valid and not expiring soon (https targets only)

Usage:
    python scripts/healthcheck.py --url http://localhost:8000
    python scripts/healthcheck.py --url https://hr.example.com --json

Exit codes:
    0 = all checks passed
    1 = one or more checks failed
    2 = critical failure (cannot reach target at all)
"""

from __future__ import annotations

import argparse
import json
import socket
import ssl
import sys
from datetime import datetime, timezone
from urllib.parse import urlparse

import requests


# ══════════════════════════════════════════════════════════════════════
# Check result model
# ══════════════════════════════════════════════════════════════════════

class CheckResult:
    """Single health check result."""

    def __init__(self, name: str, passed: bool, message: str,
                 detail: str = "", severity: str = "error", reachable: bool = True):
        self.name = name
        self.passed = passed
        self.message = message
        self.detail = detail
        self.severity = severity  # "error", "warning", "info"
        self.reachable = reachable

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "passed": self.passed,
            "message": self.message,
            "detail": self.detail,
            "severity": self.severity,
        }

    def __str__(self) -> str:
        icon = "✅" if self.passed else ("⚠️" if self.severity == "warning" else "❌")
        s = f"{icon} {self.name}: {self.message}"
        if self.detail:
            s += f"\n     {self.detail}"
        return s


# ══════════════════════════════════════════════════════════════════════
# Health checks
# ══════════════════════════════════════════════════════════════════════

def check_backend_health(base_url: str, timeout: int = 10) -> CheckResult:
    """Check that /api/v1/health responds with status "healthy"."""
    health_url = f"{base_url.rstrip('/')}/api/v1/health"
    try:
        resp = requests.get(health_url, timeout=timeout)
    except requests.exceptions.SSLError as e:
        return CheckResult("Backend API", False, "SSL error connecting to backend", str(e),
                           reachable=False)
    except requests.exceptions.RequestException as e:
        return CheckResult("Backend API", False, "Cannot connect to backend", str(e),
                           reachable=False)

    if resp.status_code != 200:
        return CheckResult(
            "Backend API", False,
            f"HTTP {resp.status_code} (expected 200)",
            f"URL: {health_url}",
        )
    try:
        body = resp.json()
    except ValueError:
        return CheckResult("Backend API", False, "Response is not JSON", resp.text[:200])

    if body.get("status") != "healthy":
        return CheckResult(
            "Backend API", False,
            f"Status: {body.get('status', 'missing')} (expected 'healthy')",
            f"Response: {json.dumps(body)}",
        )
    return CheckResult(
        "Backend API", True,
        f"Healthy (v{body.get('version', 'unknown')}, {body.get('environment', 'unknown')})",
        f"URL: {health_url}",
    )


def check_auth_guard(base_url: str, timeout: int = 10) -> CheckResult:
    """Anonymous calls to /api/v1/auth/me must be rejected with 401."""
    url = f"{base_url.rstrip('/')}/api/v1/auth/me"
    try:
        resp = requests.get(url, timeout=timeout)
    except requests.exceptions.RequestException as e:
        return CheckResult("Auth Guard", False, "Request failed", str(e))

    if resp.status_code == 401:
        return CheckResult("Auth Guard", True, "Anonymous session rejected (401)")
    return CheckResult(
        "Auth Guard", False,
        f"HTTP {resp.status_code} (expected 401)",
        f"URL: {url}",
    )


def check_ssl_certificate(hostname: str, port: int = 443,
                          warn_days: int = 14) -> CheckResult:
    """Check SSL certificate validity and expiry."""
    try:
        ctx = ssl.create_default_context()
        with socket.create_connection((hostname, port), timeout=10) as sock:
            with ctx.wrap_socket(sock, server_hostname=hostname) as ssock:
                cert = ssock.getpeercert()
    except ssl.SSLCertVerificationError as e:
        return CheckResult("SSL Certificate", False, "Certificate verification failed", str(e))
    except (socket.timeout, ConnectionRefusedError, OSError) as e:
        return CheckResult(
            "SSL Certificate", False,
            f"Cannot connect to {hostname}:{port}",
            str(e),
        )

    not_after = cert.get("notAfter", "")
    if not not_after:
        return CheckResult("SSL Certificate", False, "Cannot read certificate expiry")

    # Format: 'Mar 15 12:00:00 2025 GMT'
    expiry = datetime.strptime(not_after, "%b %d %H:%M:%S %Y %Z").replace(tzinfo=timezone.utc)
    days_left = (expiry - datetime.now(timezone.utc)).days
    issuer = dict(x[0] for x in cert.get("issuer", []))
    detail = f"Issuer: {issuer.get('commonName', 'unknown')}, Expires: {not_after}"

    if days_left < 0:
        return CheckResult("SSL Certificate", False, f"EXPIRED {abs(days_left)} days ago!", detail)
    if days_left < warn_days:
        return CheckResult(
            "SSL Certificate", True,
            f"Expiring soon: {days_left} days left",
            detail,
            severity="warning",
        )
    return CheckResult("SSL Certificate", True, f"Valid ({days_left} days until expiry)", detail)


# ══════════════════════════════════════════════════════════════════════
# Runner
# ══════════════════════════════════════════════════════════════════════

def run_healthcheck(url: str, skip_ssl: bool = False, timeout: int = 10) -> list[CheckResult]:
    """Run all health checks and return results."""
    results: list[CheckResult] = []
    parsed = urlparse(url)

    backend = check_backend_health(url, timeout)
    results.append(backend)
    if not backend.reachable:
        return results

    results.append(check_auth_guard(url, timeout))

    if parsed.scheme == "https" and not skip_ssl:
        results.append(check_ssl_certificate(parsed.hostname))
    else:
        results.append(CheckResult(
            "SSL Certificate", True,
            "Skipped (--skip-ssl)" if skip_ssl else "Skipped (not HTTPS)",
            severity="info",
        ))
    return results


def main():
    parser = argparse.ArgumentParser(description="NDI HR Health Check")
    parser.add_argument("--url", type=str, default="http://localhost:8000",
                        help="Base URL to check (default: http://localhost:8000)")
    parser.add_argument("--skip-ssl", action="store_true",
                        help="Skip SSL certificate check")
    parser.add_argument("--json", dest="output_json", action="store_true",
                        help="Output results as JSON")
    parser.add_argument("--timeout", type=int, default=10,
                        help="HTTP timeout in seconds (default: 10)")
    args = parser.parse_args()

    results = run_healthcheck(args.url, skip_ssl=args.skip_ssl, timeout=args.timeout)
    passed = sum(1 for r in results if r.passed)
    failed = len(results) - passed

    if args.output_json:
        print(json.dumps({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "target": args.url,
            "checks": [r.to_dict() for r in results],
            "all_passed": failed == 0,
            "summary": {"total": len(results), "passed": passed, "failed": failed},
        }, indent=2))
    else:
        print(f"{'=' * 60}\n  NDI HR — HEALTH CHECK\n  Target : {args.url}\n{'=' * 60}\n")
        for result in results:
            print(result)
            print()
        print("=" * 60)
        if failed == 0:
            print(f"  ✅ ALL {len(results)} CHECKS PASSED")
        else:
            print(f"  ❌ {failed}/{len(results)} CHECKS FAILED")
        print("=" * 60)

    if any(not r.reachable for r in results):
        sys.exit(2)
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
