#!/usr/bin/env python
"""Example of ensuring vendored dependencies concurrently."""
from __future__ import annotations

import asyncio
import logging

from engine.config import EnsureSettings
from engine.ensure import EnsureEngine
from models.dependency import Dependency

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


async def main() -> None:
    """Run the dependency ensuring example."""
    settings = EnsureSettings()
    engine = EnsureEngine(settings)

    dependencies = [
        Dependency(owner="Southclaws", repo="SIF"),
        Dependency(owner="Southclaws", repo="samp-logger", version="1.x"),
    ]

    outcomes = await engine.ensure_packages(settings.vendor_dir, dependencies)

    for outcome in outcomes:
        if outcome.ok:
            result = outcome.result
            state = "updated" if result.changed else "up to date"
            print(f"  - {outcome.dependency}: {result.target.describe()} ({state})")
        else:
            print(f"  - {outcome.dependency}: FAILED {outcome.error}")


if __name__ == "__main__":
    asyncio.run(main())
