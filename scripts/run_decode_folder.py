#!/usr/bin/env python3
"""``lfbatch`` light field folder decoder.

Usage:
    python scripts/run_decode_folder.py scripts/user_config.py
    python scripts/run_decode_folder.py scripts/user_config.py Images/F01
    python scripts/run_decode_folder.py scripts/user_config.py --tasks ColourCorrect Rectify
    python scripts/run_decode_folder.py scripts/user_config.py --output-format eslf.png --force-redo

Note: User config in scripts/user_config.py, expert defaults in src/lfbatch/schemas/param.py
"""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from lfbatch.cli.run_decode import main


if __name__ == "__main__":
    sys.exit(main())
