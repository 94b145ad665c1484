"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overselling
  locust -f locustfile.py --tags throughput   # Test programme cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

Environment:
  ADMIN_API_KEY must match the server's. Checkout needs PAYMENT_SESSION_URL
  pointing at something that answers {"url": ...}; the box-office scenario
  needs nothing external.
"""

import os
import random
import string
from datetime import date, timedelta
from locust import HttpUser, task, between, tag, events

ADMIN_HEADERS = {"X-Admin-Key": os.environ.get("ADMIN_API_KEY", "change-me-admin-key")}

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None
CONCURRENCY_SEATS = 10


def random_email():
    return f"load_{random.randint(10000, 99999)}@test.com"


def random_name():
    return "Guest " + "".join(random.choices(string.ascii_lowercase, k=6))


def random_phone():
    return "06" + "".join(random.choices(string.digits, k=8))


def show_payload(title):
    start = date.today() + timedelta(days=random.randint(1, 90))
    return {
        "title": title,
        "description": "Stand-up night",
        "start_date": start.isoformat(),
        "start_time": "20:30:00",
        "end_date": start.isoformat(),
        "end_time": "22:30:00",
        "price": 2000,
    }


def customer(event_id, seats=1):
    return {
        "event_id": event_id,
        "user_name": random_name(),
        "user_email": random_email(),
        "user_phone": random_phone(),
        "seats": seats,
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print(f"SETUP: concurrency event gets {CONCURRENCY_SEATS} seats")
    print("="*60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 customers -> 10 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT SUM(seats) FROM bookings
      WHERE event_id = X AND status IN ('pending', 'confirmed');
    Should be <= 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        if CONCURRENCY_EVENT_ID:
            return
        resp = self.client.post("/api/v1/events/", json=show_payload("Concurrency Test Show"),
            headers=ADMIN_HEADERS)
        if resp.status_code == 201:
            event_id = resp.json()["id"]
            self.client.put(f"/api/v1/events/{event_id}/booking-settings",
                json={"max_seats": CONCURRENCY_SEATS, "seats_per_booking": 2},
                headers=ADMIN_HEADERS)
            globals()["CONCURRENCY_EVENT_ID"] = event_id
            print(f"\n✓ Created event {event_id} with {CONCURRENCY_SEATS} seats\n")

    @tag("concurrency")
    @task(3)
    def checkout_limited_seats(self):
        """Customers race through checkout for the same seats."""
        if not CONCURRENCY_EVENT_ID:
            return

        with self.client.post("/api/v1/bookings/checkout",
            json=customer(CONCURRENCY_EVENT_ID),
            catch_response=True
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409 expected once sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("concurrency")
    @task(1)
    def box_office_limited_seats(self):
        """Box office sells at the door at the same time."""
        if not CONCURRENCY_EVENT_ID:
            return

        with self.client.post("/api/v1/bookings/",
            json=customer(CONCURRENCY_EVENT_ID),
            headers=ADMIN_HEADERS,
            catch_response=True
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false on the server, run again
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_programme_cached(self):
        page = random.randint(1, 5)
        self.client.get(f"/api/v1/events/?page={page}&page_size=20",
            name="/api/v1/events/ [cached]")

    @tag("throughput", "read")
    @task(3)
    def check_availability(self):
        """Never cached: always hits the database."""
        if EVENT_IDS:
            event_id = random.choice(EVENT_IDS)
            self.client.get(f"/api/v1/events/{event_id}/availability?seats={random.randint(1, 4)}",
                name="/api/v1/events/{id}/availability")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_event(self):
        with self.client.post("/api/v1/bookings/checkout", json=customer(999999),
            catch_response=True) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def zero_seats(self):
        with self.client.post("/api/v1/bookings/checkout", json=customer(1, seats=0),
            catch_response=True) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def tampered_amount(self):
        payload = customer(1)
        payload["amount"] = "0.01"
        with self.client.post("/api/v1/bookings/checkout", json=payload,
            catch_response=True) as resp:
            self._expect(resp, [404, 422])

    @tag("edge")
    @task
    def garbage_payment_return(self):
        """The return page must always render."""
        with self.client.get("/api/v1/payments/return?status=success&session=x&bookingData=%7Bnope",
            name="/api/v1/payments/return [garbage]",
            catch_response=True) as resp:
            self._expect(resp, [200])

    @tag("edge")
    @task
    def missing_admin_key(self):
        with self.client.post("/api/v1/bookings/", json=customer(1),
            catch_response=True) as resp:
            self._expect(resp, [401])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing the programme
      - Some availability checks and checkouts
      - Rare new shows
    """
    wait_time = between(1, 3)

    @task(50)
    def browse_programme(self):
        resp = self.client.get("/api/v1/events/?page=1&page_size=20")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_show(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}",
                name="/api/v1/events/{id}")

    @task(10)
    def checkout(self):
        if EVENT_IDS:
            self.client.post("/api/v1/bookings/checkout",
                json=customer(random.choice(EVENT_IDS), seats=random.randint(1, 3)))

    @task(3)
    def create_show(self):
        resp = self.client.post("/api/v1/events/",
            json=show_payload(f"Show {random.randint(1, 10000)}"),
            headers=ADMIN_HEADERS)
        if resp.status_code == 201:
            EVENT_IDS.append(resp.json()["id"])
