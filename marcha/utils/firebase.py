import asyncio
from functools import partial
from typing import Optional


async def firestore_run(fn, *args, timeout: Optional[float] = None, **kwargs):
    """
    Run blocking Firestore SDK calls in the default executor.
    With a timeout, raises asyncio.TimeoutError once it elapses; the call itself
    keeps running in its thread and may still commit.
    """
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(None, partial(fn, *args, **kwargs))
    if timeout is None:
        return await future
    return await asyncio.wait_for(future, timeout)
