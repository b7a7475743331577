"""Entry point for `python -m resource_watcher`.

Usage:
    python -m resource_watcher
"""

from __future__ import annotations

import asyncio

from resource_watcher.app import main

asyncio.run(main())
