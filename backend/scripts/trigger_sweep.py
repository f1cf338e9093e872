"""Trigger one scheduler sweep over HTTP, the way the external cron does."""
import asyncio
import os
import sys

import httpx

from pocketlawyer.config import settings


async def trigger(base_url: str):
    async with httpx.AsyncClient(timeout=120) as client:
        resp = await client.post(
            f"{base_url}/scheduler/run",
            headers={"x-api-key": settings.scheduler_api_key},
        )
        print(f"Status: {resp.status_code}")
        print(f"Body: {resp.text}")
        return resp.status_code


if __name__ == "__main__":
    url = sys.argv[1] if len(sys.argv) > 1 else os.environ.get("API_URL", "http://localhost:8000")
    status = asyncio.run(trigger(url.rstrip("/")))
    sys.exit(0 if status == 200 else 1)
