#!/usr/bin/env python3
"""Start VoiceTake straight from a source checkout (also the frozen-app entry)."""

import sys
from pathlib import Path

_SRC = Path(__file__).resolve().parent / "src"
if _SRC.is_dir() and str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

from voicetake.gui import main  # noqa: E402


if __name__ == "__main__":
    main()
