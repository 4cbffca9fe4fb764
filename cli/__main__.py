"""
Entry point for running the Tabichan CLI as a module.

Usage:
    python -m cli chat "Plan a 2-day trip to Tokyo" --user-id user123
    python -m cli poll TASK_ID
    python -m cli image IMAGE_ID --country japan --output photo.jpg
    python -m cli ws "Show me temples in Kyoto" --user-id user123 --preference budget=medium
"""

import asyncio
from .commands import main

if __name__ == "__main__":
    asyncio.run(main())
