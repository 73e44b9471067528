import asyncio
import json
from collections.abc import Callable


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the loop until predicate() holds, failing after timeout seconds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


def metadata_of(record) -> dict:
    return json.loads(record.metadata)
