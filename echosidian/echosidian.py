from __future__ import annotations

import argparse
import datetime
import json
import logging
import os
import threading
import urllib.request
from pathlib import Path
from typing import Callable, List, Optional

import schedule

from .__version__ import __version__
from .client import NoteQueueClient
from .config import (
    EDITABLE_KEYS,
    EchoConfig,
    default_settings_path,
    env_settings,
    load_config,
    load_settings,
    save_settings,
)
from .errors import EchosidianError
from .notes import BaseNoteStore, NoteContext, provider_from_env as note_provider_from_env
from .notifications import (
    BaseNotificationProvider,
    NotificationContext,
    NotificationPayload,
    NotificationSeverity,
    providers_from_env as notification_providers_from_env,
)
from .orchestrator import SyncOrchestrator, SyncResult
from .transport import Transport

log = logging.getLogger("echosidian")

# Determine verbose mode from environment variable ECHOSIDIAN_VERBOSE
VERBOSE = os.environ.get("ECHOSIDIAN_VERBOSE", "0") == "1"

_default_log_path = Path.home() / ".echosidian.log"
LOG_PATH = Path(os.environ["ECHOSIDIAN_LOG_PATH"]) if os.environ.get("ECHOSIDIAN_LOG_PATH") else _default_log_path


def configure_logging(verbose: bool = False, log_path: Optional[Path] = None) -> None:
    """Log to LOG_PATH, and to the terminal as well in verbose mode."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(log_path or LOG_PATH, encoding="utf-8"),
            logging.StreamHandler() if verbose else logging.NullHandler(),
        ],
    )
    if verbose:
        log.debug(f"Startup configuration: VERBOSE={verbose}, LOG_PATH='{log_path or LOG_PATH}'")


def ping_healthcheck(suffix: str = "") -> None:
    """Ping healthchecks.io (or compatible endpoint) if configured.

    Uses ECHOSIDIAN_HEALTHCHECK_URL as the base; appends an optional suffix
    such as "/start" or "/fail". Any network errors are swallowed so that
    healthcheck outages do not break a sync pass.
    """
    base = os.environ.get("ECHOSIDIAN_HEALTHCHECK_URL", "").strip()
    if not base:
        return
    url = base.rstrip("/") + suffix
    try:
        with urllib.request.urlopen(url, timeout=5):
            pass
    except Exception as e:
        log.debug(f"healthcheck ping to {url} failed: {e}")


def build_orchestrator(
    config: EchoConfig,
    store: Optional[BaseNoteStore] = None,
    transport_factory: Optional[Callable[[EchoConfig], Transport]] = None,
) -> SyncOrchestrator:
    """Build a fresh client and orchestrator for `config`."""
    if transport_factory is None:
        transport = Transport(config.api_url, config.vault_token, timeout=config.request_timeout)
    else:
        transport = transport_factory(config)
    vault_path = config.vault_path.expanduser()
    return SyncOrchestrator(
        client=NoteQueueClient(transport),
        store=store if store is not None else note_provider_from_env(),
        ctx=NoteContext(vault_path=vault_path, vault_name=vault_path.resolve().name),
        save_folder=config.save_folder,
        client_id=config.client_id,
        page_size=config.page_size,
        on_error=config.on_error,
        transliterate=config.transliterate_titles,
    )


class SyncRunner:
    """Owns the current configuration and runs at most one pass at a time.

    Settings edits build a new EchoConfig and a new orchestrator; a pass
    that is already running finishes with the orchestrator it started with.
    """

    def __init__(
        self,
        config: EchoConfig,
        settings_path: Optional[Path] = None,
        store: Optional[BaseNoteStore] = None,
        notifiers: Optional[List[BaseNotificationProvider]] = None,
        transport_factory: Optional[Callable[[EchoConfig], Transport]] = None,
    ) -> None:
        self.settings_path = settings_path or default_settings_path()
        self._store = store
        self._transport_factory = transport_factory
        self.notifiers = notification_providers_from_env() if notifiers is None else notifiers
        self._lock = threading.Lock()
        self._settings_mtime = self._current_settings_mtime()
        self._apply(config)

    def _apply(self, config: EchoConfig) -> None:
        self.config = config
        self.orchestrator = build_orchestrator(config, self._store, self._transport_factory)

    def _current_settings_mtime(self) -> Optional[float]:
        try:
            return self.settings_path.stat().st_mtime
        except OSError:
            return None

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def update_settings(self, **changes: str) -> EchoConfig:
        """Persist edited settings and rebuild the client right away."""
        config = self.config.with_updates(**changes)
        save_settings(config, self.settings_path)
        self._settings_mtime = self._current_settings_mtime()
        self._apply(config)
        log.info(f"settings updated: {', '.join(sorted(changes))}")
        return config

    def reload_settings(self) -> bool:
        """Pick up edits made to the settings file by another process.

        Returns:
            True if the configuration changed and the client was rebuilt.
        """
        mtime = self._current_settings_mtime()
        if mtime == self._settings_mtime:
            return False
        self._settings_mtime = mtime
        # keys missing from the file fall back to the environment again
        wanted = {**env_settings(), **load_settings(self.settings_path)}
        changes = {k: v for k, v in wanted.items() if getattr(self.config, k) != v}
        if not changes:
            return False
        self._apply(self.config.with_updates(**changes))
        log.info(f"settings file changed, rebuilt client ({', '.join(sorted(changes))})")
        return True

    def check_connection(self) -> bool:
        """Return True if the vault folder exists and the server accepts our token."""
        orchestrator = self.orchestrator
        vault_ok = orchestrator.store.validate_connection(orchestrator.ctx)
        if not vault_ok:
            log.error(f"vault folder {orchestrator.ctx.vault_path} does not exist")
        return orchestrator.client.test_connection() and vault_ok

    def sync_notes(self, trigger: str = "manual") -> Optional[SyncResult]:
        """Run one pass unless another one is still in flight.

        Returns:
            The SyncResult, or None if the pass failed or was skipped.
        """
        if not self._lock.acquire(blocking=False):
            log.info(f"sync already in progress, skipping {trigger} trigger")
            return None

        try:
            orchestrator = self.orchestrator
            ping_healthcheck("/start")
            try:
                result = orchestrator.run_pass()
            except Exception as e:
                log.exception(f"sync error ({trigger}): {e}")
                ping_healthcheck("/fail")
                self._notify(NotificationSeverity.ERROR, trigger, error=str(e))
                return None

            if result.failed:
                ping_healthcheck("/fail")
                self._notify(NotificationSeverity.ERROR, trigger, result=result)
            else:
                ping_healthcheck()
                if result.synced:
                    self._notify(NotificationSeverity.INFO, trigger, result=result)
            return result
        finally:
            self._lock.release()

    def _notify(
        self,
        severity: NotificationSeverity,
        trigger: str,
        result: Optional[SyncResult] = None,
        error: Optional[str] = None,
    ) -> None:
        payload = NotificationPayload(
            vault_name=self.orchestrator.ctx.vault_name,
            severity=severity,
            timestamp=datetime.datetime.now().isoformat(timespec="seconds"),
            fetched=result.fetched if result else 0,
            synced=result.synced if result else 0,
            failed=len(result.failed) if result else 0,
            error=error,
        )
        ctx = NotificationContext(trigger=trigger)
        for provider in self.notifiers:
            try:
                provider.send(payload, ctx)
            except Exception as e:
                # Providers should never raise, but catch just in case
                log.warning(f"notification provider {provider.name} raised exception: {e}")


def run_threaded(job_func: Callable[..., object], *args: object) -> threading.Thread:
    job_thread = threading.Thread(target=job_func, args=args, name="echosidian-sync")
    job_thread.start()
    return job_thread


def schedule_jobs(runner: SyncRunner, scheduler: schedule.Scheduler) -> None:
    """Register the one-off startup pass and the recurring timer pass."""
    config = runner.config

    def startup_once():
        run_threaded(runner.sync_notes, "startup")
        return schedule.CancelJob

    scheduler.every(max(1, int(round(config.startup_delay_seconds)))).seconds.do(startup_once)
    scheduler.every(max(60, int(config.sync_interval_minutes * 60))).seconds.do(
        run_threaded, runner.sync_notes, "timer"
    )


def watch(runner: SyncRunner, stop: Optional[threading.Event] = None, interval: float = 1) -> None:
    """Run scheduled passes until `stop` is set or the user interrupts."""
    stop = stop or threading.Event()
    scheduler = schedule.Scheduler()
    schedule_jobs(runner, scheduler)
    log.info(
        f"watching {runner.config.api_url} every {runner.config.sync_interval_minutes:g} minute(s)"
    )
    try:
        while not stop.is_set():
            try:
                runner.reload_settings()
            except EchosidianError as e:
                log.error(f"ignoring unreadable settings file: {e}")
            scheduler.run_pending()
            stop.wait(interval)
    except KeyboardInterrupt:
        log.info("watch interrupted")
    finally:
        scheduler.clear()


def _mask(token: str) -> str:
    if not token:
        return ""
    return "…" + token[-4:] if len(token) > 8 else "****"


def describe_settings(config: EchoConfig) -> dict:
    return {
        "api_url": config.api_url,
        "vault_token": _mask(config.vault_token),
        "save_folder": config.save_folder,
        "vault_path": str(config.vault_path),
        "client_id": config.client_id,
        "page_size": config.page_size,
        "request_timeout": config.request_timeout,
        "sync_interval_minutes": config.sync_interval_minutes,
        "startup_delay_seconds": config.startup_delay_seconds,
        "on_error": config.on_error,
        "transliterate_titles": config.transliterate_titles,
    }


def export_status_json(runner: SyncRunner) -> dict:
    """Describe the effective configuration for scripts and status bars."""
    return {
        "version": __version__,
        "settings": describe_settings(runner.config),
        "settings_path": str(runner.settings_path),
        "log_path": str(LOG_PATH),
        "providers": {
            "notification": [p.name for p in runner.notifiers],
            "notes": runner.orchestrator.store.name,
        },
        "running": runner.is_running,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="echosidian",
        description="Echosidian: pull notes from an Echo note queue into an Obsidian vault",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Echosidian {__version__}",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging output",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("sync", help="Run one sync pass now")
    commands.add_parser("watch", help="Sync shortly after start, then on a fixed interval")
    commands.add_parser("test-connection", help="Check that the server accepts the vault token")
    commands.add_parser("status", help="Print the effective configuration as JSON")

    config_cmd = commands.add_parser("config", help="Show or edit persisted settings")
    config_actions = config_cmd.add_subparsers(dest="action", required=True)
    config_actions.add_parser("show", help="Print the effective settings")
    set_cmd = config_actions.add_parser("set", help="Persist one setting")
    set_cmd.add_argument("key", choices=EDITABLE_KEYS)
    set_cmd.add_argument("value")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(VERBOSE or args.verbose)

    try:
        runner = SyncRunner(load_config())
    except EchosidianError as e:
        log.error(f"configuration error: {e}")
        print(f"Echosidian: {e}")
        return 2

    if args.command == "sync":
        result = runner.sync_notes("manual")
        return 0 if result is not None and not result.failed else 1

    if args.command == "watch":
        watch(runner)
        return 0

    if args.command == "test-connection":
        ok = runner.check_connection()
        print(f"Echosidian: connection to {runner.config.api_url} {'OK' if ok else 'FAILED'}")
        if not runner.orchestrator.store.validate_connection(runner.orchestrator.ctx):
            print(f"Echosidian: vault folder {runner.orchestrator.ctx.vault_path} does not exist")
        return 0 if ok else 1

    if args.command == "status":
        print(json.dumps(export_status_json(runner), indent=2))
        return 0

    if args.action == "set":
        runner.update_settings(**{args.key: args.value})
        print(f"Echosidian: {args.key} updated")
        return 0

    print(json.dumps(describe_settings(runner.config), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
