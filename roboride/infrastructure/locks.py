"""
Redis-based per-vehicle lease.

The dispatch coordinator holds ``lock:vehicle:<id>`` for the whole
select -> command -> claim sequence, so two concurrent bookings cannot
both command the same vehicle while its availability flag is still true.
The TTL bounds how long a crashed worker can keep a vehicle leased.

Implementation uses SET NX EX for acquire and a Lua script for
atomic check-and-delete on release.
"""

from __future__ import annotations

import uuid

import redis.asyncio as aioredis

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 30
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())
        self.held = False

    async def acquire(self) -> bool:
        """Try to acquire. Returns True on success."""
        self.held = bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )
        return self.held

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        if not self.held:
            return
        await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token)
        self.held = False

    # context-manager support
    async def __aenter__(self):
        acquired = await self.acquire()
        if not acquired:
            raise RuntimeError(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()


def vehicle_lease(
    client: aioredis.Redis, vehicle_id: str, ttl_seconds: int = 30
) -> DistributedLock:
    return DistributedLock(client, f"vehicle:{vehicle_id}", ttl_seconds)
