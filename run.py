#!/usr/bin/env python3
"""
DuoServer Launcher
Serves ./www (or the directory given on the command line) without installing the package.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from duoserver.main import main

if __name__ == "__main__":
    sys.exit(main())
