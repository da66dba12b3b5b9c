"""
Debounced source watcher.

Filesystem events arrive on watchdog's observer thread and are handed to the
event loop, where a single scheduler task turns bursts of events into cycles.
"""
import asyncio
import fnmatch
import signal
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Set, TYPE_CHECKING
import logging

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..config.global_config_loader import EngineConfig
from ..core.exceptions import EngineError

if TYPE_CHECKING:
    from ..build.manager import BuildEngine, CycleReport


logger = logging.getLogger(__name__)

_STOP = object()

CycleRunner = Callable[[Set[str]], Awaitable[Any]]


class CycleScheduler:
    """
    Coalesces change notifications into cycles.

    Every notification restarts the debounce window; when the window elapses
    one cycle runs with all collected paths. Cycles are awaited inline, so two
    never run at once, and notifications that arrive during a cycle are queued
    and produce exactly one follow-up cycle.
    """

    def __init__(self, run_cycle: CycleRunner, debounce: float = 0.15):
        """
        Args:
            run_cycle: Coroutine function invoked with the set of changed paths
            debounce: Debounce window in seconds
        """
        self._run_cycle = run_cycle
        self.debounce = debounce
        self.cycles_run = 0
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping = False
        self._task = asyncio.create_task(self._loop())

    def notify(self, paths: Iterable[str]) -> None:
        """Record changed paths. Must be called on the event loop thread."""
        if self._stopping:
            return
        self._queue.put_nowait(set(paths))

    def stop(self) -> None:
        """
        Stop scheduling. A pending debounce is dropped; a cycle already running
        is allowed to finish.
        """
        if self._stopping:
            return
        self._stopping = True
        self._queue.put_nowait(_STOP)

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def shutdown(self) -> None:
        """Stop and cancel the scheduler task, including a running cycle"""
        self.stop()
        if self.running:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def run_once(self, paths: Set[str]) -> bool:
        """
        Run one cycle, logging engine errors instead of raising them.

        Returns:
            True if the cycle completed without error
        """
        self.cycles_run += 1
        try:
            await self._run_cycle(paths)
            return True
        except EngineError as e:
            logger.error(f"Cycle failed: {e}")
        except Exception:
            logger.exception("Unexpected error during cycle")
        return False

    async def _loop(self) -> None:
        while True:
            batch = await self._next_batch()
            if batch is None:
                break
            await self.run_once(batch)
        logger.debug("Scheduler stopped")

    async def _next_batch(self) -> Optional[Set[str]]:
        item = await self._queue.get()
        if item is _STOP:
            return None

        paths = set(item)
        while True:
            try:
                item = await asyncio.wait_for(self._queue.get(), timeout=self.debounce)
            except asyncio.TimeoutError:
                return paths
            if item is _STOP:
                return None
            paths.update(item)


class _SourceEventHandler(FileSystemEventHandler):
    """
    Forwards content changes only. Open and close events are ignored, since
    every cycle reads the entity files and would otherwise trigger itself.
    """

    def __init__(self, watcher: 'SourceWatcher'):
        super().__init__()
        self.watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.handle_paths([event.src_path])

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.watcher.handle_paths([event.src_path])

    def on_deleted(self, event: FileSystemEvent) -> None:
        self.watcher.handle_paths([event.src_path])

    def on_moved(self, event: FileSystemEvent) -> None:
        self.watcher.handle_paths([event.src_path, event.dest_path])


class SourceWatcher:
    """Observes entity source directories (and the config file) with watchdog"""

    def __init__(self, project_root: Path, config: EngineConfig, on_change: Callable[[List[str]], None]):
        """
        Args:
            project_root: Project root directory
            config: Engine configuration (entity paths, output and state dirs, ignore patterns)
            on_change: Called from the observer thread with relevant changed paths
        """
        self.project_root = Path(project_root).resolve()
        self.config = config
        self.on_change = on_change
        self.observer: Optional[Observer] = None

        self.entity_dirs = [(self.project_root / path).resolve() for path in config.entities.paths]
        self.config_file = Path(config.config_path).resolve() if config.config_path else None
        self._excluded_dirs = [
            (self.project_root / config.out_dir).resolve(),
            (self.project_root / config.state_dir).resolve(),
        ]

    def is_config_path(self, path: str) -> bool:
        return self.config_file is not None and Path(path).resolve() == self.config_file

    def is_relevant(self, path: str) -> bool:
        """True for paths that may change the entity set"""
        if self.is_config_path(path):
            return True

        candidate = Path(path).resolve()

        for excluded in self._excluded_dirs:
            if candidate == excluded or excluded in candidate.parents:
                return False

        root = next(
            (root for root in self.entity_dirs if candidate == root or root in candidate.parents),
            None
        )
        if root is None:
            return False

        if candidate.name.startswith('.tmp_'):
            return False
        for part in candidate.relative_to(root).parts:
            if any(fnmatch.fnmatch(part, pattern) for pattern in self.config.watch.ignore):
                return False
        return True

    def handle_paths(self, paths: List[str]) -> None:
        relevant = [path for path in paths if self.is_relevant(path)]
        if relevant:
            logger.debug(f"Source change: {', '.join(relevant)}")
            self.on_change(relevant)

    def start(self) -> None:
        handler = _SourceEventHandler(self)
        observer = Observer()

        for entity_dir in self.entity_dirs:
            if not entity_dir.is_dir():
                logger.warning(f"Entity path does not exist, not watching: {entity_dir}")
                continue
            observer.schedule(handler, str(entity_dir), recursive=True)
            logger.info(f"Watching {entity_dir}")

        if self.config_file is not None and self.config_file.parent.is_dir():
            observer.schedule(handler, str(self.config_file.parent), recursive=False)

        observer.daemon = True
        observer.start()
        self.observer = observer

    def stop(self) -> None:
        if self.observer is not None:
            self.observer.stop()
            self.observer.join(timeout=5.0)
            self.observer = None
            logger.info("Source watcher stopped")


async def run_dev(
    engine: 'BuildEngine',
    apply: bool = True,
    on_report: Optional[Callable[['CycleReport'], Any]] = None,
    install_signal_handlers: bool = True
) -> CycleScheduler:
    """
    Run an initial cycle, then re-run cycles on source changes until
    interrupted (SIGINT/SIGTERM).

    Args:
        engine: Build engine of the project
        apply: Apply plans; when False every cycle is a dry run
        on_report: Called with the CycleReport of every cycle
        install_signal_handlers: Stop on SIGINT/SIGTERM

    Returns:
        The scheduler, after it stopped
    """
    loop = asyncio.get_running_loop()
    watcher: Optional[SourceWatcher] = None

    def make_watcher() -> SourceWatcher:
        return SourceWatcher(
            engine.project_root,
            engine.config,
            lambda paths: loop.call_soon_threadsafe(scheduler.notify, paths),
        )

    async def cycle(paths: Set[str]) -> None:
        nonlocal watcher
        if paths:
            logger.info(f"Change detected in {len(paths)} file(s), replanning")
        if watcher is not None and any(watcher.is_config_path(path) for path in paths):
            await engine.reload_config()
            scheduler.debounce = engine.config.watch.debounce_ms / 1000
            # Entity paths and ignore patterns may have changed
            watcher.stop()
            watcher = make_watcher()
            watcher.start()
        report = await engine.run_cycle(apply=apply)
        if on_report is not None:
            on_report(report)

    scheduler = CycleScheduler(cycle, engine.config.watch.debounce_ms / 1000)
    await scheduler.run_once(set())

    installed = []
    if install_signal_handlers:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, scheduler.stop)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                logger.debug(f"Signal handlers not supported for {sig}")

    scheduler.start()
    watcher = make_watcher()
    watcher.start()
    logger.info("Watching for changes, press Ctrl+C to stop")
    try:
        await scheduler.wait()
    finally:
        await scheduler.shutdown()
        watcher.stop()
        for sig in installed:
            loop.remove_signal_handler(sig)

    return scheduler
