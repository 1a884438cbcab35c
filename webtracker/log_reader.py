"""Reading the CSV usage log back and graphing its columns over time."""

from __future__ import annotations

import os
import re
import subprocess
import sys
import time
from pathlib import Path

import matplotlib.pyplot as plt

INT_CATEGORIES = (
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
)
TIMESTAMP_COLUMN = "timestamp_ns"
NANO_PER_SECOND = 1_000_000_000
PLOT_FILE = "plot.png"

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_NON_INTERACTIVE_BACKENDS = frozenset({"agg", "cairo", "pdf", "pgf", "ps", "svg", "template"})


class LogReaderError(Exception):
    """The log could not be read, or a request on it cannot be served."""


def _parse_leading_int(text: str, bits: int) -> int:
    """Parse the leading integer of ``text`` the way a C library would, within a signed range."""
    match = _INT_PREFIX.match(text)
    if match is None:
        raise ValueError(f"no digits in {text!r}")
    value = int(match.group(1))
    limit = 1 << (bits - 1)
    if not -limit <= value < limit:
        raise ValueError(f"{text!r} is out of range")
    return value


def _to_int(text: str) -> int:
    try:
        return _parse_leading_int(text, 32)
    except ValueError:
        return 0


def _to_whole_seconds(nanoseconds: int) -> int:
    seconds = abs(nanoseconds) // NANO_PER_SECOND
    return -seconds if nanoseconds < 0 else seconds


def _to_relative_seconds(values: list[str]) -> list[int]:
    try:
        stamps = [_parse_leading_int(value, 64) for value in values]
    except ValueError as exc:
        raise LogReaderError(f"Invalid timestamp: {exc}") from exc
    first = _to_whole_seconds(stamps[0])
    return [_to_whole_seconds(stamp) - first for stamp in stamps]


def _split_cells(line: str) -> list[str]:
    """Split a CSV line on commas; a trailing empty cell is not a cell."""
    line = line.rstrip("\n")
    if not line:
        return []
    cells = line.split(",")
    if cells[-1] == "":
        cells.pop()
    return cells


def _open_file(path: str) -> None:
    """Hand the file to the desktop's default viewer."""
    if sys.platform == "win32":
        os.startfile(path)  # type: ignore[attr-defined]
        return
    opener = "open" if sys.platform == "darwin" else "xdg-open"
    try:
        subprocess.run([opener, path], check=False)
    except OSError as exc:
        print(f"Unable to open {path}: {exc}", file=sys.stderr)


def _can_display() -> bool:
    return plt.get_backend().lower() not in _NON_INTERACTIVE_BACKENDS


def count_csv_rows(file_name: str | os.PathLike) -> int:
    """The number of non-empty rows in a CSV file, not counting the header."""
    with open(file_name, encoding="utf-8") as handle:
        count = sum(1 for line in handle if line.rstrip("\n"))
    return max(count - 1, 0)


class LogReader:
    """Parses the usage log into columns and draws them against time."""

    def __init__(self, file_name: str | os.PathLike) -> None:
        self.file_name = file_name
        self.data_parsed = False
        self._columns: dict[str, list] = {}

    def is_int_category(self, category: str) -> bool:
        """Whether ``category`` is a numeric column that can be graphed."""
        return category in INT_CATEGORIES

    def parse_data(self) -> bool:
        """Read the log into columns; returns False when it holds no data rows."""
        try:
            if count_csv_rows(self.file_name) == 0:
                return False
        except OSError as exc:
            raise LogReaderError(f"Error opening file: {self.file_name}") from exc

        start = time.perf_counter()
        try:
            with open(self.file_name, encoding="utf-8") as handle:
                header = _split_cells(next(handle, ""))
                columns: dict[str, list] = {name: [] for name in header}
                for line in handle:
                    cells = _split_cells(line)
                    if len(cells) > len(header):
                        raise LogReaderError(
                            f"Row has more cells than the header: {line.rstrip()}"
                        )
                    for name, cell in zip(header, cells):
                        columns[name].append(cell)
        except OSError as exc:
            raise LogReaderError(f"Error opening file: {self.file_name}") from exc

        for name in columns:
            if self.is_int_category(name):
                columns[name] = [_to_int(value) for value in columns[name]]
        if not columns.get(TIMESTAMP_COLUMN):
            raise LogReaderError(f"No {TIMESTAMP_COLUMN} data in {self.file_name}")
        columns[TIMESTAMP_COLUMN] = _to_relative_seconds(columns[TIMESTAMP_COLUMN])

        self._columns = columns
        self.data_parsed = True
        elapsed = time.perf_counter() - start
        print("Data successfully parsed!")
        print(f"Time taken: {elapsed:.9f}s")
        return True

    def column(self, category: str) -> list:
        """A copy of the parsed values of one column."""
        if not self.data_parsed:
            raise LogReaderError("Data not parsed yet! Please run 'updatedata'")
        if category not in self._columns:
            raise LogReaderError(f"No such column: {category}")
        return list(self._columns[category])

    def _series(self, category: str) -> tuple[list[int], list[int]]:
        if not self.data_parsed:
            raise LogReaderError("Data not parsed yet! Please run 'updatedata'")
        if not self.is_int_category(category):
            raise LogReaderError("Invalid category")
        if category not in self._columns:
            raise LogReaderError(f"No data for category: {category}")
        times = self._columns[TIMESTAMP_COLUMN]
        values = self._columns[category]
        if len(times) != len(values):
            raise LogReaderError(
                f"{category} has {len(values)} values for {len(times)} timestamps"
            )
        return list(times), list(values)

    @staticmethod
    def _plot(category: str, times: list[int], values: list[int]):
        figure, axes = plt.subplots()
        axes.plot(times, values)
        axes.set_xlabel("Time (s)")
        axes.set_ylabel(category)
        axes.set_title(f"{category} over time")
        return figure

    def graph_over_time(self, category: str):
        """Plot ``category`` against seconds since the first row; returns the figure."""
        times, values = self._series(category)
        figure = self._plot(category, times, values)
        if _can_display():
            plt.show(block=False)
        return figure

    def graph_over_time_with_map(self, category: str) -> Path:
        """Plot ``category`` over time into plot.png and open it; returns the image path."""
        times, values = self._series(category)
        figure = self._plot(category, times, values)
        figure.savefig(PLOT_FILE)
        plt.close(figure)
        _open_file(PLOT_FILE)
        return Path(PLOT_FILE)

    def print_int_categories(self) -> None:
        """Print the names of the graphable columns, one per line."""
        for category in INT_CATEGORIES:
            print(category)