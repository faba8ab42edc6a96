from .debounce import Debouncer, ScheduledTask, Scheduler, ThreadingScheduler

__all__ = ["Debouncer", "ScheduledTask", "Scheduler", "ThreadingScheduler"]
