from __future__ import annotations

from show_validation.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
