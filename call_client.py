#!/usr/bin/env python3
"""
Interactive session client for Call Relay.

This script connects to the signaling relay and places or answers audio
calls from the console.
"""

import sys
from pathlib import Path

# Add src directory to Python path
src_path = Path(__file__).parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from call_relay.cli import client_main

if __name__ == "__main__":
    sys.exit(client_main())
