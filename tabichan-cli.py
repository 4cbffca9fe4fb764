#!/usr/bin/env python3
"""
tabichan: command-line client for the Tabichan trip-planning API.

Usage:
    python tabichan-cli.py chat "Plan a 2-day trip to Tokyo" --user-id user123
    python tabichan-cli.py ws "Show me temples in Kyoto" --user-id user123

The API key is read from --api-key or the TABICHAN_API_KEY environment variable.

This file is a thin wrapper around the cli package.
"""

import asyncio
from cli.commands import main

if __name__ == "__main__":
    asyncio.run(main())
