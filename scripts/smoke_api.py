#!/usr/bin/env python3
"""Smoke test for the booking API against a running server (STORE_PROVIDER=memory, demo seed)."""

import sys

import httpx


BASE_URL = "http://127.0.0.1:8001"

CLIENT = {"X-Actor-Id": "client-1", "X-Actor-Role": "client", "X-Actor-Name": "Demo Client"}
AGENT = {"X-Actor-Id": "agent-1", "X-Actor-Role": "agent"}


def check_create() -> str | None:
    """Create a booking as the client."""
    print("=" * 60)
    print("Testing POST /api/v1/bookings")
    print("=" * 60)

    payload = {"property_id": "P1", "visit_date": "2030-03-01", "visit_time": "10:00", "notes": "Smoke test"}
    try:
        response = httpx.post(f"{BASE_URL}/api/v1/bookings", json=payload, headers=CLIENT, timeout=10.0)
        response.raise_for_status()
        data = response.json()
        print(f"✅ Created booking {data['id']} ({data['status']}) for {data['property_title']}")
        return data["id"]
    except httpx.HTTPStatusError as e:
        print(f"❌ HTTP Error: {e.response.status_code}")
        print(f"Response: {e.response.text}")
        return None
    except Exception as e:
        print(f"❌ Error: {e}")
        return None


def check_confirm(booking_id: str) -> bool:
    """Confirm as the agent, then confirm again and expect 409."""
    print("\n" + "=" * 60)
    print(f"Testing POST /api/v1/bookings/{booking_id}/confirm")
    print("=" * 60)

    url = f"{BASE_URL}/api/v1/bookings/{booking_id}/confirm"
    try:
        response = httpx.post(url, headers=AGENT, timeout=10.0)
        response.raise_for_status()
        data = response.json()
        print(f"✅ {data['previous_status']} -> {data['booking']['status']}")
        if data.get("notification"):
            print(f"   Notified: {data['notification']['recipient_id']}")

        again = httpx.post(url, headers=AGENT, timeout=10.0)
        print(f"   Second confirm: {again.status_code} {again.json()['detail']['code']}")
        return again.status_code == 409
    except httpx.HTTPStatusError as e:
        print(f"❌ HTTP Error: {e.response.status_code}")
        print(f"Response: {e.response.text}")
        return False
    except Exception as e:
        print(f"❌ Error: {e}")
        return False


def check_views(booking_id: str) -> bool:
    """Booking list, chat card and the client's notification inbox."""
    print("\n" + "=" * 60)
    print("Testing list, card and notifications")
    print("=" * 60)

    try:
        listing = httpx.get(f"{BASE_URL}/api/v1/bookings", headers=CLIENT, timeout=10.0).json()
        print(f"Upcoming ({len(listing['upcoming'])}):")
        for item in listing["upcoming"]:
            print(f"  {item['visit_date']} {item['visit_time']}  {item['property_title']}  [{item['status_label']}]")

        card = httpx.get(f"{BASE_URL}/api/v1/bookings/{booking_id}/card", headers=CLIENT, timeout=10.0).json()
        print(f"\nCard: {card['state']} / {card['status_label']}")

        inbox = httpx.get(f"{BASE_URL}/api/v1/notifications", headers=CLIENT, timeout=10.0).json()
        print(f"\nInbox ({inbox['unread_count']} unread):")
        for n in inbox["notifications"]:
            print(f"  {n['title']}: {n['message']}")
        return True
    except Exception as e:
        print(f"❌ Error: {e}")
        return False


def main():
    """Run all checks."""
    print("\n🚀 Testing Booking API\n")

    try:
        httpx.get(f"{BASE_URL}/health", timeout=5.0)
        print("✅ Server is running\n")
    except Exception:
        print("❌ Server is not running!")
        print("   Please start it with: uvicorn app.main:app --reload --port 8001")
        sys.exit(1)

    booking_id = check_create()
    if booking_id:
        check_confirm(booking_id)
        check_views(booking_id)

    print("\n" + "=" * 60)
    print("✅ Checks complete!")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
