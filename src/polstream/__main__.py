#!/usr/bin/env python3
"""
Polarization Stream Processing Engine - Package Entry Point

Allows running: python -m polstream
"""

import sys

from polstream.pipeline.orchestrator import main

if __name__ == "__main__":
    sys.exit(main())
