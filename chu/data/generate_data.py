"""Data generator script for seeding a running Camel Health Union server.

Posts a set of users and their heart-rate readings:
- Every user is posted twice, so the second post exercises the update path
- Heart-rate readings are sent concurrently
- Some readings share a timestamp, which the server keeps as separate documents
"""

import asyncio
import random
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Tuple

import httpx

# Configuration
API_URL = "http://localhost:3000"
USER_COUNT = 20
READINGS_PER_USER = 50
CONCURRENCY = 10
DUPLICATE_TIMESTAMP_RATIO = 0.05

GENDERS = ["f", "m", "x"]
RATE_RANGE = (50, 110)


def generate_users(count: int) -> List[Dict[str, Any]]:
    """Generate user records carrying every required field."""
    users = []
    for i in range(count):
        users.append({
            "username": f"user_{i:03d}",
            "password": f"secret_{i:03d}",
            "clientId": f"client_{i:03d}",
            "fitbitAccessToken": f"token_{random.getrandbits(64):016x}",
            "age": random.randint(18, 80),
            "gender": random.choice(GENDERS),
            "height": random.randint(150, 200),
            "weight": random.randint(45, 120),
            "memberSince": str(random.randint(2015, 2024)),
            "averageDailySteps": random.randint(1000, 15000),
        })
    return users


def generate_readings(
    user_id: str, start_time: datetime, count: int
) -> List[Dict[str, Any]]:
    """Generate one reading per minute, with a few repeated timestamps."""
    readings = []
    for i in range(count):
        timestamp = start_time + timedelta(minutes=i)
        readings.append({
            "userId": user_id,
            "rate": random.randint(*RATE_RANGE),
            "timestamp": timestamp.isoformat() + "Z",
        })

    for _ in range(int(count * DUPLICATE_TIMESTAMP_RATIO)):
        original = random.choice(readings)
        readings.append({**original, "rate": random.randint(*RATE_RANGE)})

    return readings


async def post_json(
    client: httpx.AsyncClient, path: str, payload: Dict[str, Any]
) -> Tuple[int, Dict[str, Any]]:
    response = await client.post(f"{API_URL}{path}", json=payload)
    return response.status_code, response.json()


async def generate_and_send_data() -> None:
    """Main function to generate and send seed data."""
    start_time = datetime(2024, 1, 15, 10, 0, 0)
    users = generate_users(USER_COUNT)

    async with httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=2.0)) as client:
        try:
            health_response = await client.get(f"{API_URL}/health", timeout=2.0)
            health_response.raise_for_status()
        except httpx.HTTPError:
            print(f"ERROR: Cannot connect to API at {API_URL}")
            print("Make sure the server is running: chu-server")
            return

        total_start_time = time.time()
        created = updated = 0
        user_ids: List[str] = []

        print(f"1 - Posting {len(users)} users twice...", flush=True)
        for user in users:
            status_code, body = await post_json(client, "/users", user)
            if status_code == 201:
                created += 1
            user_ids.append(body["userId"])

            user["averageDailySteps"] += 500
            status_code, body = await post_json(client, "/users", user)
            if status_code == 200:
                updated += 1

        print(f"2 - Posting {READINGS_PER_USER} readings per user...", flush=True)
        semaphore = asyncio.Semaphore(CONCURRENCY)
        failures = 0

        async def send_reading(reading: Dict[str, Any]) -> None:
            nonlocal failures
            async with semaphore:
                status_code, _ = await post_json(client, "/heartrates", reading)
                if status_code != 201:
                    failures += 1

        all_readings = [
            reading
            for user_id in user_ids
            for reading in generate_readings(user_id, start_time, READINGS_PER_USER)
        ]
        await asyncio.gather(*(send_reading(r) for r in all_readings))

        total_time = time.time() - total_start_time

        print("\n" + "=" * 60)
        print(f"Users created: {created}")
        print(f"Users updated: {updated}")
        print(f"Readings sent: {len(all_readings)}")
        print(f"Reading failures: {failures}")
        print(f"Total time: {total_time:.3f}s")
        print("=" * 60)
        print(f'\nYou can now inspect the data: curl "{API_URL}/"')


if __name__ == "__main__":
    print("Camel Health Union Data Generator")
    print("=" * 60)
    asyncio.run(generate_and_send_data())
