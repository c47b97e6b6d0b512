import os
import sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import argparse
import concurrent.futures
from collections import Counter

import requests

BASE = os.environ.get("MOBILEORDER_BASE", "http://127.0.0.1:8000")


def login(email):
    r = requests.post(f"{BASE}/auth/login", json={"email": email}, timeout=10)
    r.raise_for_status()
    return r.json()["token"]


def advance_task(i, token, order_id):
    headers = {"Authorization": f"Bearer {token}"}
    try:
        r = requests.patch(f"{BASE}/admin/orders/{order_id}/status", headers=headers, timeout=10)
        return (i, "advance", r.status_code, r.text)
    except requests.RequestException as e:
        return (i, "advance", "ERR", str(e))


def login_task(i, email):
    try:
        r = requests.post(f"{BASE}/auth/login", json={"email": email}, timeout=10)
        return (i, "login", r.status_code, r.headers.get("Retry-After"))
    except requests.RequestException as e:
        return (i, "login", "ERR", str(e))


def run_advance_concurrent(workers, admin_email, order_id):
    """Every request races the same transition; at most one per status may win."""
    print(f"Running advance test: workers={workers}, order_id={order_id}")
    token = login(admin_email)
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(advance_task, i, token, order_id) for i in range(workers)]
        results = [f.result() for f in futures]
    for r in results:
        print(r)
    print("Status codes:", Counter(r[2] for r in results))


def run_login_concurrent(workers, email):
    print(f"Running failed-login test: workers={workers}, email={email}")
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(login_task, i, email) for i in range(workers)]
        results = [f.result() for f in futures]
    for r in results:
        print(r)
    print("Status codes:", Counter(r[2] for r in results))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrency test tool (status advance or logins).")
    sub = parser.add_subparsers(dest="mode", required=True)

    a = sub.add_parser("advance")
    a.add_argument("--admin", default="kitchen@noodle.example")
    a.add_argument("--order", type=int, required=True)
    a.add_argument("--workers", type=int, default=8)

    lg = sub.add_parser("logins")
    lg.add_argument("--email", default="nobody@example.com")
    lg.add_argument("--workers", type=int, default=12)

    args = parser.parse_args()

    if args.mode == "advance":
        run_advance_concurrent(args.workers, args.admin, args.order)
    elif args.mode == "logins":
        run_login_concurrent(args.workers, args.email)
