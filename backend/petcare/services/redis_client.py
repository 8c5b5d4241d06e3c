# petcare/services/redis_client.py
import redis
import os

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
r = redis.Redis.from_url(REDIS_URL, decode_responses=True)

USAGE_PREFIX = "usage"


def usage_key(identity: str) -> str:
    return f"{USAGE_PREFIX}:{identity}"


def usage_lock_key(identity: str) -> str:
    return f"{USAGE_PREFIX}:lock:{identity}"
