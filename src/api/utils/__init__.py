"""Helpers for calling the synchronous render pipeline from route handlers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")


async def run_sync(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    # Typst compilation is CPU bound and must not block the event loop.
    return await asyncio.to_thread(func, *args, **kwargs)


__all__ = ["run_sync"]
