from __future__ import annotations

import argparse
import json

from watchinstall.core.config.manager import ConfigManager
from watchinstall.core.config.paths import ConfigFsPaths


def main() -> None:
    ap = argparse.ArgumentParser(description="Print the validated watchinstall config.")
    ap.add_argument("--root", default=".", help="Root holding config/.")
    args = ap.parse_args()
    cm = ConfigManager(fs=ConfigFsPaths(args.root), logger=None, read_only=True)
    cfg = cm.load_all()
    print(json.dumps(cfg.model_dump(mode="json"), indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
