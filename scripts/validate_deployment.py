"""
Pre-Deploy and Smoke Test Script.

Validates the configured environment against the real database:
1. Health Check
2. Open balance list
3. Balance and statement of the first listed customer (closing balance identity)
"""

import sys

from fastapi.testclient import TestClient

from backoffice.app.main import app
from backoffice.app.core.jwt import create_access_token


def print_step(step, msg):
    print(f"[{step}] {msg}")


def fail(msg):
    print(f"❌ FAILURE: {msg}")
    sys.exit(1)


def success(msg):
    print(f"✅ {msg}")


def main():
    print("🚀 Starting Deployment Validation...")

    with TestClient(app) as client:
        print_step("PRE-DEPLOY", "Checking /health...")
        response = client.get("/health")
        if response.status_code != 200:
            fail(f"Health check failed: {response.status_code} {response.text}")
        success("Health check passed")

        print_step("AUTH", "Generating cashier token...")
        token = create_access_token(data={"sub": "deploy_bot", "role": "CASHIER", "user_id": 1})
        headers = {"Authorization": f"Bearer {token}"}

        print_step("VERIFY", "Listing open balances...")
        res = client.get("/v1/ar/customers", params={"limit": 5}, headers=headers)
        if res.status_code != 200:
            fail(f"Open balance list failed: {res.status_code} {res.text}")
        rows = res.json()["rows"]
        if not rows:
            print("⚠️ No customers with an open balance. Smoke test incomplete but DB connected.")
            success("Deployment Validation Passed!")
            return
        success(f"{len(rows)} customers with an open balance")

        customer_id = rows[0]["customer_id"]
        print_step("SMOKE", f"Checking balance and statement of customer {customer_id}...")
        balance = client.get(f"/v1/ar/customers/{customer_id}/balance", headers=headers)
        if balance.status_code != 200:
            fail(f"Balance failed: {balance.status_code} {balance.text}")
        if balance.json()["balance"] != rows[0]["total_open_balance"]:
            fail("Balance endpoint disagrees with the open balance list")

        statement = client.get(f"/v1/ar/customers/{customer_id}/statement", headers=headers)
        if statement.status_code != 200:
            fail(f"Statement failed: {statement.status_code} {statement.text}")
        ledger = statement.json()["ledger"]
        entries = ledger["entries"]
        last_running = entries[-1]["running_balance"] if entries else ledger["opening_balance"]
        if ledger["closing_balance"] != last_running:
            fail("Closing balance does not match the last running balance")
        success(f"Statement OK: {len(entries)} entries, closing {ledger['closing_balance']}")

    success("Deployment Validation Passed!")


if __name__ == "__main__":
    main()
