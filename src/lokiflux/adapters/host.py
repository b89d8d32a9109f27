"""Host resource sampling via psutil."""

import psutil

from lokiflux.core.models import HostStats


class PsutilHostStats:
    """HostStatsPort implementation backed by psutil.

    CPU usage is the one-minute load average divided by the number of
    logical cores, as a percentage. Memory usage is used memory over total
    memory, as a percentage.
    """

    def sample(self) -> HostStats:
        """Sample current CPU and memory usage."""
        load_1m, _, _ = psutil.getloadavg()
        cores = psutil.cpu_count() or 1
        mem = psutil.virtual_memory()
        used = mem.total - mem.available
        return HostStats(
            cpu_percent=round(load_1m / cores * 100, 2),
            memory_percent=round(used / mem.total * 100, 2) if mem.total else 0.0,
        )


class StaticHostStats:
    """HostStatsPort returning fixed values, for tests and dry runs."""

    def __init__(self, cpu_percent: float = 0.0, memory_percent: float = 0.0) -> None:
        self._stats = HostStats(cpu_percent=cpu_percent, memory_percent=memory_percent)

    def sample(self) -> HostStats:
        """Return the configured values."""
        return self._stats
