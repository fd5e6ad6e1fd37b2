from __future__ import annotations

import argparse
import json
import os
import signal
import sys
import threading
from typing import List, Optional

from watchinstall.core.config.manager import ConfigManager
from watchinstall.core.config.paths import ConfigFsPaths
from watchinstall.core.engine import build_engine
from watchinstall.core.errors import ConfigurationError, ScanError
from watchinstall.core.install.cli import installed_lines, report_lines
from watchinstall.core.logger import setup_logging
from watchinstall.core.repository.fs import FsRepository


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Keep installed resources in sync with a repository's watch folders.")
    ap.add_argument("--root", default=".", help="Working root holding config/, runtime/ and logs/.")
    ap.add_argument("--repo", required=True, help="Local directory backing the content repository.")
    ap.add_argument("--once", action="store_true", help="Run one full reconcile and exit.")
    ap.add_argument("--pattern", default=None, help="Override the watch folder pattern (saved to config/watch.json).")
    ap.add_argument("--status", action="store_true", help="Print installed resources and exit.")
    ap.add_argument("--json", action="store_true", help="Print the cycle report as JSON (with --once).")
    args = ap.parse_args(argv)

    fs = ConfigFsPaths(root=os.path.abspath(args.root))
    config = ConfigManager(fs=fs, logger=None)
    try:
        cfg = config.load_all()
    except ConfigurationError as e:
        print(f"Config error: {e.user_message}", file=sys.stderr)
        return 2
    logger = setup_logging(fs.resolve(cfg.app.log_dir))
    config.logger = logger

    if args.pattern is not None:
        watch = cfg.watch.model_dump(mode="json")
        watch["folder_pattern"] = args.pattern
        try:
            config.save_non_sensitive("watch.json", watch)
        except ConfigurationError as e:
            logger.error(f"Invalid --pattern: {e.user_message}")
            return 2

    engine = build_engine(config=config, repository=FsRepository(args.repo), logger=logger)

    if args.status:
        for line in installed_lines(controller=engine.controller):
            print(line)
        engine.shutdown()
        return 0

    if args.once:
        try:
            report = engine.scope.activate()
        except ScanError as e:
            logger.error(f"Scan failed: {e.user_message}")
            engine.shutdown()
            return 1
        if args.json:
            print(json.dumps(report.to_dict(), indent=2, sort_keys=True))
        else:
            for line in report_lines(report):
                print(line)
        engine.shutdown()
        return 0 if report.ok else 1

    stop = threading.Event()

    def _on_signal(_signum, _frame):  # noqa: ANN001
        stop.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    config.start_watcher()
    engine.scheduler.start()
    logger.info(f"Watching {cfg.watch.search_paths} for folders matching {engine.scope.pattern!r}")
    while not stop.is_set():
        stop.wait(0.5)
    logger.info("Shutting down (waiting for the running cycle to finish).")
    engine.shutdown()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
