from pathlib import Path

import redis

from ..config import PARQUET_DIR, QUEUE_NAME, REDIS_URL
from .events_writer import decode, write_batch


def drain(r, outdir: Path = PARQUET_DIR):
    batch = []
    # Pop everything currently in Redis
    while True:
        raw = r.lpop(QUEUE_NAME)
        if raw is None:
            break
        row = decode(raw)
        if row is not None:
            batch.append(row)

    if not batch:
        print("[drain] queue empty — nothing to write.")
        return None
    return write_batch(batch, outdir)


def main():
    drain(redis.Redis.from_url(REDIS_URL, decode_responses=False))


if __name__ == "__main__":
    main()
