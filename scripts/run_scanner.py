#!/usr/bin/env python3
"""
Signal scanner launcher script.

Runs the scan pipeline with the paper profile: every gate, score and cooldown
runs as in production, but alerts are logged instead of sent to Telegram.
"""

import asyncio
import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from signalbot.runner.pipeline import main


if __name__ == "__main__":
    if len(sys.argv) == 1:
        sys.argv = ["signalbot", "--config", "configs/paper.yaml", "--profile", "paper"]

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nSignal scanner stopped by user.")
        sys.exit(0)
    except Exception as e:
        print(f"Error running signal scanner: {e}")
        sys.exit(1)
