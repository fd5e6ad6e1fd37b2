from __future__ import annotations

from watchinstall.app import main


if __name__ == "__main__":
    raise SystemExit(main())
