"""Backend-bound handlers run off the event loop."""

import asyncio
import threading

import httpx

from lingualens.main import create_app


class GatedBackend:
    """Holds every table() call until the gate opens (or two seconds pass)."""

    def __init__(self, inner, gate):
        self._inner = inner
        self._gate = gate

    def table(self, name):
        self._gate.wait(timeout=2)
        return self._inner.table(name)

    def __getattr__(self, name):
        return getattr(self._inner, name)


async def test_slow_write_does_not_stall_health(engine, backend, verifier, ai, auth_headers):
    gate = threading.Event()
    app = create_app(backend=GatedBackend(backend, gate), verifier=verifier, ai_service=ai, engine=engine)
    finished = []

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://lingua.test") as client:

        async def write():
            r = await client.post(
                "/api/vocabulary/words",
                json={"word": "run", "definition_en": "to move fast"},
                headers=auth_headers,
            )
            finished.append("write")
            return r

        async def health():
            await asyncio.sleep(0.05)
            r = await client.get("/health")
            finished.append("health")
            gate.set()
            return r

        written, checked = await asyncio.gather(write(), health())

    assert checked.status_code == 200
    assert written.status_code == 200
    assert finished == ["health", "write"]
