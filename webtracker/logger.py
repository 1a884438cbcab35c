"""Appending interval statistics as rows of a CSV log."""

from __future__ import annotations

import time
from pathlib import Path

from webtracker.stats import PacketStats

LOG_INTERVAL_SECONDS = 10
TOP_DOMAIN_COUNT = 5

CSV_COLUMNS = (
    "packet_count",
    "total_bytes",
    "eth_packet_count",
    "ipv4_packet_count",
    "ipv6_packet_count",
    "tcp_packet_count",
    "udp_packet_count",
    "dns_packet_count",
    "http_request_packet_count",
    "http_response_packet_count",
    "ssl_packet_count",
    "packets_per_second (throughput)",
    "latency_ns",
    "timestamp_ns",
    "top_domain_1",
    "top_domain_2",
    "top_domain_3",
    "top_domain_4",
    "top_domain_5",
)
HEADER = ",".join(CSV_COLUMNS) + "\n"


def format_row(stats: PacketStats, timestamp_ns: int | None = None) -> str:
    """Render one CSV row for the statistics of a logging interval."""
    if timestamp_ns is None:
        timestamp_ns = time.time_ns()
    latency = stats.total_time_ns // stats.packet_count if stats.packet_count else 0
    numbers = [
        stats.packet_count,
        stats.total_bytes,
        stats.eth_packet_count,
        stats.ipv4_packet_count,
        stats.ipv6_packet_count,
        stats.tcp_packet_count,
        stats.udp_packet_count,
        stats.dns_packet_count,
        stats.http_request_packet_count,
        stats.http_response_packet_count,
        stats.ssl_packet_count,
        stats.packet_count // LOG_INTERVAL_SECONDS,
        latency,
        timestamp_ns,
    ]
    domains = "".join(
        f"{domain}-{count}," for domain, count in stats.top_domains(TOP_DOMAIN_COUNT)
    )
    return ",".join(str(value) for value in numbers) + "," + domains + "\n"


class CsvLogger:
    """Append-only CSV log that writes the header when it creates the file."""

    def __init__(self, file_name: str | Path) -> None:
        path = Path(file_name)
        existed = path.exists()
        self._file = path.open("a", encoding="utf-8", newline="")
        if not existed:
            self._file.write(HEADER)

    def log_stats(self, stats: PacketStats, timestamp_ns: int | None = None) -> None:
        """Append one row for ``stats``."""
        self._file.write(format_row(stats, timestamp_ns))

    def flush(self) -> None:
        """Push buffered rows to the file."""
        self._file.flush()

    def close(self) -> None:
        """Flush and close the file."""
        self._file.close()

    def __enter__(self) -> CsvLogger:
        return self

    def __exit__(self, *args) -> None:
        self.close()