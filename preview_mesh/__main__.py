"""Allow ``python -m preview_mesh``."""

from __future__ import annotations

import sys

from preview_mesh.cli import main

if __name__ == "__main__":
    sys.exit(main())
