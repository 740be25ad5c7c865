import argparse

from ..config import ENDPOINT, TOKEN
from ..events import WirePayload
from ..sensors.transport import post_one
from .personas import PERSONAS


def seed(visits_per_persona=5, url=ENDPOINT, token=TOKEN):
    sent = 0
    for persona in PERSONAS.values():
        for _ in range(visits_per_persona):
            for payload in persona(token=token):
                body = WirePayload.model_validate(payload).model_dump_json(by_alias=True).encode("utf-8")
                post_one(url, body)
                sent += 1
    return sent


def main(argv=None):
    ap = argparse.ArgumentParser(description="Post synthetic visits to the collector")
    ap.add_argument("--visits", type=int, default=5)
    ap.add_argument("--url", default=ENDPOINT)
    args = ap.parse_args(argv)
    sent = seed(args.visits, args.url)
    print(f"Seeded {sent} events across {len(PERSONAS)} personas.")


if __name__ == "__main__":
    main()
