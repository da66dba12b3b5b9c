from .watcher import CycleScheduler, SourceWatcher, run_dev

__all__ = ['CycleScheduler', 'SourceWatcher', 'run_dev']
