from __future__ import annotations

"""
Assembly of the reconciliation engine from validated config.

Keeps app.py a thin argument parser and lets tests build the same object
graph against a temporary root.
"""

import os
from dataclasses import dataclass
from typing import Any, Optional

from watchinstall.core.config.manager import ConfigManager
from watchinstall.core.config.models import AppConfig
from watchinstall.core.errors import ConfigurationError
from watchinstall.core.events.bus import EventBus
from watchinstall.core.events.subscribers import CoreEventJsonlSubscriber
from watchinstall.core.install.controller import Controller, LocalController
from watchinstall.core.install.cycle import ReconciliationCycle
from watchinstall.core.install.scanner import ResourceScanner
from watchinstall.core.install.scope import WatchScopeManager
from watchinstall.core.repository.base import Repository
from watchinstall.core.scheduler import ReconcileScheduler, SchedulerConfig


@dataclass
class Engine:
    config: ConfigManager
    repository: Repository
    controller: Controller
    scope: WatchScopeManager
    scheduler: ReconcileScheduler
    event_bus: Optional[EventBus] = None

    def on_config_reloaded(self, previous: AppConfig, current: AppConfig) -> None:
        """Config reload listener: a changed watch.json reconfigures the watch scope."""
        if previous.watch == current.watch:
            return
        try:
            self.scope.reconfigure(
                current.watch.folder_pattern,
                extensions=current.watch.extensions,
                search_paths=current.watch.search_paths,
            )
        except ConfigurationError:
            # rejected pattern is logged by the scope manager; previous one stays active
            return

    def shutdown(self) -> None:
        self.scheduler.stop()
        self.config.stop_watcher()
        if self.event_bus is not None:
            self.event_bus.shutdown()


def build_engine(
    *,
    config: ConfigManager,
    repository: Repository,
    controller: Optional[Controller] = None,
    logger: Any = None,
) -> Engine:
    cfg = config.get()

    event_bus: Optional[EventBus] = None
    if cfg.events.bus.enabled:
        event_bus = EventBus(cfg=cfg.events.bus.model_copy(), logger=logger)
        if cfg.events.jsonl_enabled:
            event_bus.subscribe("*", CoreEventJsonlSubscriber(path=config.fs.resolve(cfg.events.jsonl_path)), priority=100)

    if controller is None:
        controller = LocalController(
            install_dir=config.fs.resolve(cfg.controller.install_dir),
            registry_path=config.fs.resolve(cfg.controller.registry_path),
            logger=logger,
        )
        os.makedirs(config.fs.resolve(cfg.controller.install_dir), exist_ok=True)

    scanner = ResourceScanner(repository=repository, search_paths=cfg.watch.search_paths, logger=logger)
    cycle = ReconciliationCycle(scanner=scanner, controller=controller, event_bus=event_bus, logger=logger)
    scope = WatchScopeManager(
        cycle=cycle,
        pattern=cfg.watch.folder_pattern,
        extensions=cfg.watch.extensions,
        event_bus=event_bus,
        logger=logger,
    )
    scheduler = ReconcileScheduler(
        scope=scope,
        cfg=SchedulerConfig(enabled=cfg.scheduler.enabled, interval_seconds=cfg.scheduler.interval_seconds),
        logger=logger,
    )
    engine = Engine(config=config, repository=repository, controller=controller, scope=scope, scheduler=scheduler, event_bus=event_bus)
    config.add_reload_listener(engine.on_config_reloaded)
    return engine
