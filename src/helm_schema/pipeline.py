import queue as queue_module
import threading
import time
from dataclasses import dataclass
from typing import List, Optional, Set

from .common import logger
from .discovery import CHART_FILE_NAME, search_files
from .worker import GeneratorOptions, Result, worker, worker_count

# Bounded hand-off so producers wait for consumers
CHANNEL_SIZE = 1


@dataclass
class PipelineStats:
    start_time: float = None
    end_time: float = None
    workers: int = 0
    charts: int = 0
    discovery_errors: int = 0

    @property
    def duration(self) -> float:
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.time()
        return end - self.start_time


class _Done:
    """Posted by the supervisor once no worker can send anymore."""


def run_pipeline(
    chart_search_root: str,
    options: GeneratorOptions,
    dependencies_filter: Optional[Set[str]] = None,
    workers: Optional[int] = None,
    chart_file_name: str = CHART_FILE_NAME,
    stats: Optional[PipelineStats] = None,
) -> List[Result]:
    """
    Discover every chart below `chart_search_root` and generate its schema.

    Returns one Result per discovered chart, ordered by chart path.
    """
    workers = workers or worker_count()
    stats = stats if stats is not None else PipelineStats()
    stats.start_time = time.time()
    stats.workers = workers

    queue = queue_module.Queue(maxsize=CHANNEL_SIZE)
    # Results, errors and completion share one FIFO so that completion can
    # never overtake a result that was sent before it.
    events = queue_module.Queue(maxsize=CHANNEL_SIZE)

    walker = threading.Thread(
        target=search_files,
        args=(chart_search_root, chart_search_root, chart_file_name, dependencies_filter, queue, events),
        name="helm-schema-discovery",
        daemon=True,
    )

    pool = [
        threading.Thread(target=worker, args=(options, queue, events), name=f"helm-schema-worker-{i}", daemon=True)
        for i in range(workers)
    ]

    def supervise():
        for thread in pool:
            thread.join()
        events.put(_Done())

    supervisor = threading.Thread(target=supervise, name="helm-schema-supervisor", daemon=True)

    logger().info(f"Searching {chart_search_root} for {chart_file_name} files ({workers} workers)")
    walker.start()
    for thread in pool:
        thread.start()
    supervisor.start()

    results: List[Result] = []
    while True:
        event = events.get()
        if isinstance(event, _Done):
            break
        if isinstance(event, Result):
            logger().debug(f"Received result for {event.describe()}")
            results.append(event)
        else:
            stats.discovery_errors += 1
            logger().error(str(event))

    walker.join()
    supervisor.join()

    results.sort(key=lambda r: r.chart_path)
    stats.charts = len(results)
    stats.end_time = time.time()
    logger().info(f"Generated {stats.charts} schema result(s) in {stats.duration:.1f}s")
    return results
