#!/usr/bin/env python3
"""
SmartOPD API smoke test.

Walks the registration and queue flow against a running server
(``python manage.py seed_opd`` first) and prints a report.  Exits
non-zero when any step fails.

    OPD_BASE_URL=http://127.0.0.1:8000 python smoke_api.py
"""
import os
import sys
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

BASE_URL = os.getenv("OPD_BASE_URL", "http://127.0.0.1:8000")
ADMIN = {"username": os.getenv("OPD_ADMIN_USER", "admin"), "password": os.getenv("OPD_ADMIN_PASSWORD", "opd12345")}
DEPARTMENT = os.getenv("OPD_SMOKE_DEPARTMENT", "GEN")


@dataclass
class TestResult:
    success: bool
    endpoint: str
    method: str
    status_code: int
    response_time: float
    error_message: str = ""
    description: str = ""


class ApiSmokeTester:
    def __init__(self):
        self.session = requests.Session()
        self.headers = {"Content-Type": "application/json"}
        self.test_results: List[TestResult] = []
        self.error_results: List[TestResult] = []

    def call(self, method: str, endpoint: str, data: Optional[Dict] = None,
             expected_status: int = 200, description: str = "") -> Optional[Dict[str, Any]]:
        """Send one request, record the result and return the JSON body."""
        url = f"{BASE_URL}{endpoint}"
        start_time = time.time()
        body = None
        try:
            response = self.session.request(method.upper(), url, json=data, headers=self.headers, timeout=10)
            response_time = time.time() - start_time
            ok = response.status_code == expected_status
            result = TestResult(
                success=ok,
                endpoint=endpoint,
                method=method,
                status_code=response.status_code,
                response_time=response_time,
                error_message="" if ok else response.text[:200],
                description=description,
            )
            if response.headers.get("Content-Type", "").startswith("application/json"):
                body = response.json()
            print(f"{'✅' if ok else '❌'} {method} {endpoint} - {response.status_code} ({response_time:.2f}s)")
        except requests.RequestException as e:
            result = TestResult(
                success=False,
                endpoint=endpoint,
                method=method,
                status_code=0,
                response_time=time.time() - start_time,
                error_message=str(e),
                description=description,
            )
            print(f"❌ {method} {endpoint} - error: {e}")

        self.test_results.append(result)
        if not result.success:
            self.error_results.append(result)
        return body

    def login(self) -> bool:
        data = self.call("POST", "/api/auth/login", ADMIN, 200, "admin login")
        if not data or not data.get("token"):
            return False
        self.headers["Authorization"] = f"Token {data['token']}"
        return True

    def run(self):
        print(f"🧪 SmartOPD smoke test against {BASE_URL}\n")
        self.call("GET", "/healthz", None, 200, "health check")
        self.call("GET", "/api/departments", None, 200, "department list")

        token_ids = []
        for name, phone in [("Asha Rao", "9876543210"), ("Vikram Das", "9123456780"), ("Meera Nair", "9000000001")]:
            data = self.call("POST", "/api/register",
                             {"name": name, "phone": phone, "department": DEPARTMENT}, 201, "register patient")
            if data:
                token_ids.append(data["patient"]["id"])
        self.call("POST", "/api/register", {"name": "X", "phone": "123"}, 400, "invalid registration")

        if token_ids:
            self.call("GET", f"/api/queue/status/{token_ids[-1]}", None, 200, "token status")
        self.call("GET", f"/api/queue/live?department={DEPARTMENT}", None, 200, "live board")
        self.call("POST", "/api/queue/next", {"department": DEPARTMENT}, 401, "call next without login")

        if not self.login():
            return
        called = self.call("POST", "/api/queue/next", {"department": DEPARTMENT}, 200, "call next")
        self.call("GET", f"/api/queue/current?department={DEPARTMENT}", None, 200, "current token")
        if called and called.get("patient"):
            self.call("POST", f"/api/queue/tokens/{called['patient']['id']}/complete", None, 200, "complete token")
        self.call("GET", "/api/admin/doctors?status=pending", None, 200, "pending doctors")
        self.call("GET", f"/api/admin/patients?department={DEPARTMENT}", None, 200, "patient overview")
        self.call("POST", "/api/queue/reset", {"department": DEPARTMENT}, 200, "reset queue")

    def report(self) -> int:
        total = len(self.test_results)
        failed = len(self.error_results)
        print("\n" + "=" * 60)
        print(f"📊 {datetime.now():%Y-%m-%d %H:%M:%S}  total={total}  passed={total - failed}  failed={failed}")
        for r in self.error_results:
            print(f"  ❌ {r.method} {r.endpoint} [{r.status_code}] {r.description}: {r.error_message}")
        return 1 if failed else 0


def main():
    tester = ApiSmokeTester()
    tester.run()
    sys.exit(tester.report())


if __name__ == "__main__":
    main()
