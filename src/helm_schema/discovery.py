import os
import queue as queue_module
from typing import Optional, Set

from .chart import ChartParseError, load_chart
from .worker import END_OF_STREAM

CHART_FILE_NAME = "Chart.yaml"


class DiscoveryError(Exception):
    pass


def search_files(
    chart_search_root: str,
    start_path: str,
    file_name: str,
    dependencies_filter: Optional[Set[str]],
    queue: queue_module.Queue,
    errs: queue_module.Queue,
):
    """
    Put every chart definition below `start_path` on `queue`, then close it.

    A chart definition directly inside `chart_search_root` is always emitted.
    Any other one is emitted only if its chart name is in `dependencies_filter`
    (when a filter is given). Problems with single entries are put on `errs`
    and the walk goes on.
    """
    search_root = os.path.normpath(chart_search_root)

    def on_error(ex: OSError):
        errs.put(DiscoveryError(f"failed to walk {ex.filename}: {ex.strerror or ex}"))

    try:
        for dirpath, dirnames, filenames in os.walk(start_path, onerror=on_error):
            dirnames.sort()
            if file_name not in filenames:
                continue

            path = os.path.join(dirpath, file_name)
            if not os.path.isfile(path):
                continue

            if os.path.normpath(dirpath) == search_root:
                queue.put(path)
                continue

            if dependencies_filter:
                try:
                    chart = load_chart(path)
                except ChartParseError as ex:
                    errs.put(ex)
                    continue
                if chart.name in dependencies_filter:
                    queue.put(path)
            else:
                queue.put(path)
    finally:
        queue.put(END_OF_STREAM)
