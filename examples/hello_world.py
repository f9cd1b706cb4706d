"""
cert_storage — Hello World

Two "processes" share one medium and race to renew the same certificate.
Whoever inserts the lock document first wins; the other polls until the
lock is released, then renews on top of the winner's result.
"""

import asyncio
import logging

from cert_storage import CertificateStorage
from cert_storage.backends import InMemoryBackend

CERT_KEY = "certificates/example.com/example.com.crt"


async def renew(storage: CertificateStorage) -> None:
    async with storage.locked("example.com", timeout=10):
        try:
            current = await storage.load(CERT_KEY)
        except FileNotFoundError:
            current = b""
        print(f"  [{storage.instance_id}] holds the lock, found {len(current)} bytes")
        await asyncio.sleep(0.5)  # pretend to talk to the CA
        await storage.store(CERT_KEY, current + f"renewed by {storage.instance_id}\n".encode())


async def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s %(message)s")

    # ──────────────────────────────────────
    #  1. One shared medium, two holders
    # ──────────────────────────────────────
    medium = InMemoryBackend()
    edge_1 = CertificateStorage(medium, instance_id="edge-1", retry_interval=0.2)
    edge_2 = CertificateStorage(medium, instance_id="edge-2", retry_interval=0.2)

    # ──────────────────────────────────────
    #  2. Race
    # ──────────────────────────────────────
    await asyncio.gather(renew(edge_1), renew(edge_2))

    # ──────────────────────────────────────
    #  3. Inspect
    # ──────────────────────────────────────
    info = await edge_1.stat(CERT_KEY)
    print(f"\n{info.key}: {info.size} bytes, modified {info.modified:%H:%M:%S}")
    print((await edge_2.load(CERT_KEY)).decode())
    print("keys:", await edge_1.list("certificates/"))


if __name__ == "__main__":
    asyncio.run(main())
