#!/usr/bin/env python3
"""
WebSocket Relay Server for Call Relay.

This script starts the signaling relay that assigns client IDs and brokers
call setup between session clients.
"""

import sys
from pathlib import Path

# Add src directory to Python path
src_path = Path(__file__).parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from call_relay.cli import server_main

if __name__ == "__main__":
    sys.exit(server_main())
