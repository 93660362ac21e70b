#!/usr/bin/env python3
"""ChunkPomo entry point.

Run with:
    python main.py status
    python -m chunkpomo run
"""

import sys

from chunkpomo.__main__ import main


if __name__ == "__main__":
    sys.exit(main())
