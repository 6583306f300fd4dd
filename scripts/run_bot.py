#!/usr/bin/env python3
"""
Time Role Keeper — Launch the bot.

Usage:
    python scripts/run_bot.py                    # Bot + status API
    python scripts/run_bot.py --no-api           # Bot only
    python scripts/run_bot.py check-config       # Validate the configuration
"""

import sys
from pathlib import Path

ROOT_DIR = Path(__file__).parent.parent.absolute()
sys.path.insert(0, str(ROOT_DIR))


def main():
    from timebot.keeper.daemon import main as run_main

    return run_main()


if __name__ == "__main__":
    sys.exit(main())
