import asyncio
import json


class FakeSocket:
    """Stands in for a WebSocket: records what the writer task sends."""

    def __init__(self):
        self.sent = []
        self.closed = None

    async def send_text(self, data):
        if self.closed is not None:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(data))

    async def close(self, code=1000, reason=""):
        self.closed = (code, reason)

    def types(self):
        return [m["type"] for m in self.sent]

    def last(self, kind):
        matches = [m for m in self.sent if m["type"] == kind]
        return matches[-1] if matches else None


async def drain(*conns):
    """Let writer tasks flush everything queued so far."""
    for _ in range(200):
        if all(c.queued == 0 for c in conns):
            break
        await asyncio.sleep(0)
    await asyncio.sleep(0)
