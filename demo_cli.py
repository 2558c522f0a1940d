#!/usr/bin/env python3
"""
Bidding War CLI Demo

Runs a short bidding war against a running API (`bidwar serve`):
1. Check the service is up
2. Every configured user bids at once, each outbidding the last
3. A second round from the same users (exercises per-account nonce ordering)
4. An unknown user tries to bid
"""

import asyncio
import os
import sys

import httpx

API_URL = os.getenv("BIDWAR_API_URL", "http://localhost:3000")
USERS = os.getenv("BIDWAR_DEMO_USERS", "1,2,3").split(",")
BASE_BID_WEI = int(os.getenv("BIDWAR_DEMO_BASE_WEI", str(10**16)))

# Colors for terminal output
class Colors:
    HEADER = '\033[95m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'

def print_step(step_num: int, title: str):
    print(f"\n{Colors.HEADER}{'='*60}{Colors.ENDC}")
    print(f"{Colors.BOLD}{Colors.CYAN}Step {step_num}: {title}{Colors.ENDC}")
    print(f"{Colors.HEADER}{'='*60}{Colors.ENDC}\n")

def print_success(msg: str):
    print(f"{Colors.GREEN}✓ {msg}{Colors.ENDC}")

def print_warning(msg: str):
    print(f"{Colors.YELLOW}⚠ {msg}{Colors.ENDC}")

def print_error(msg: str):
    print(f"{Colors.RED}✗ {msg}{Colors.ENDC}")


async def place_bid(client: httpx.AsyncClient, user: str, amount: int) -> dict:
    response = await client.post(
        f"{API_URL}/bid",
        json={"userNumber": user, "amount": str(amount)},
    )
    body = response.json()
    return {"user": user, "amount": amount, "status_code": response.status_code, "body": body}


def report(result: dict):
    user, amount, body = result["user"], result["amount"], result["body"]
    if result["status_code"] == 200:
        print_success(f"user {user} bid {amount} wei → {body['tx_hash']}")
        return

    detail = body.get("detail", {})
    if isinstance(detail, dict) and detail.get("error") == "confirmation_timeout":
        print_warning(f"user {user}: not confirmed yet, may still land ({detail.get('tx_hash')})")
    else:
        print_error(f"user {user}: {result['status_code']} {detail}")


async def bidding_round(client: httpx.AsyncClient, start: int):
    tasks = [
        place_bid(client, user, BASE_BID_WEI * (start + i))
        for i, user in enumerate(USERS)
    ]
    for result in await asyncio.gather(*tasks):
        report(result)


async def main():
    print(f"\n{Colors.BOLD}{Colors.HEADER}BIDDING WAR DEMO{Colors.ENDC}")
    print(f"API Endpoint: {API_URL}")

    async with httpx.AsyncClient(timeout=300.0) as client:
        print_step(1, "HEALTH CHECK")
        response = await client.get(f"{API_URL}/health")
        if response.status_code != 200:
            print_error(f"Service not ready: {response.text}")
            return
        health = response.json()
        print_success(f"{health['accounts']} accounts bidding on {health['contract']}")

        print_step(2, "EVERYONE BIDS AT ONCE")
        await bidding_round(client, start=1)

        print_step(3, "SECOND ROUND")
        await bidding_round(client, start=len(USERS) + 1)

        print_step(4, "UNKNOWN USER")
        report(await place_bid(client, "999", BASE_BID_WEI))

    print(f"\n{Colors.BOLD}{Colors.GREEN}DEMO COMPLETE!{Colors.ENDC}")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print(f"\n{Colors.YELLOW}Demo cancelled.{Colors.ENDC}")
        sys.exit(0)
