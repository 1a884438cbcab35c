import csv
import socket
import threading
import time
from types import SimpleNamespace
from unittest.mock import patch

import psutil
import pytest

from webtracker.logger import CSV_COLUMNS
from webtracker.sniffer import PacketSniffer, SnifferError, find_capture_interface

FRAME = b"\x00" * 60


def _addr(family, address):
    return SimpleNamespace(family=family, address=address)


ADDRESSES = {
    "lo": [_addr(socket.AF_INET, "127.0.0.1")],
    "eth0": [_addr(socket.AF_INET, "0.0.0.0")],
    "wlan0": [
        _addr(psutil.AF_LINK, "02:00:00:00:00:01"),
        _addr(socket.AF_INET, "192.0.2.10"),
    ],
}
STATS = {
    "lo": SimpleNamespace(isup=True, mtu=65536, flags="up,loopback,running"),
    "eth0": SimpleNamespace(isup=True, mtu=1500, flags="up,broadcast,running"),
    "wlan0": SimpleNamespace(isup=True, mtu=1400, flags="up,broadcast,running"),
}


class FakeSocket:
    def __init__(self, frames, fail_bind=False):
        self.frames = list(frames)
        self.fail_bind = fail_bind
        self.bound = None
        self.closed = False
        self._lock = threading.Lock()

    def bind(self, address):
        if self.fail_bind:
            raise PermissionError("not permitted")
        self.bound = address

    def settimeout(self, value):
        self.timeout = value

    def recv(self, size):
        with self._lock:
            if self.frames:
                return self.frames.pop(0)
        time.sleep(0.005)
        raise TimeoutError

    def close(self):
        self.closed = True


@pytest.fixture
def interfaces():
    with patch("psutil.net_if_addrs", return_value=ADDRESSES), \
            patch("psutil.net_if_stats", return_value=STATS):
        yield


@pytest.fixture
def no_interfaces():
    with patch("psutil.net_if_addrs", return_value={"lo": ADDRESSES["lo"]}), \
            patch("psutil.net_if_stats", return_value={"lo": STATS["lo"]}):
        yield


def _fake_socket_patches(fake):
    return (
        patch("socket.AF_PACKET", 17, create=True),
        patch("socket.socket", side_effect=lambda *args, **kwargs: fake),
    )


def _data_rows(path):
    with open(path, encoding="utf-8", newline="") as handle:
        rows = list(csv.reader(handle))
    assert tuple(rows[0]) == CSV_COLUMNS
    return rows[1:]


def _wait_for(condition, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not condition() and time.monotonic() < deadline:
        time.sleep(0.01)
    return condition()


def test_find_capture_interface_skips_loopback_and_zero_address(interfaces):
    found = find_capture_interface()
    assert found.name == "wlan0"
    assert found.ipv4 == "192.0.2.10"
    assert found.mac == "02:00:00:00:00:01"
    assert found.mtu == STATS["wlan0"].mtu


def test_find_capture_interface_none_when_only_loopback(no_interfaces):
    assert find_capture_interface() is None


def test_start_without_interface_fails(no_interfaces, tmp_path):
    sniffer = PacketSniffer(tmp_path / "usage.csv")
    assert sniffer.interface is None
    with pytest.raises(SnifferError, match="Unable to locate"):
        sniffer.start()
    assert sniffer.is_capturing() is False


def test_stop_when_idle_does_nothing(no_interfaces, tmp_path):
    path = tmp_path / "usage.csv"
    sniffer = PacketSniffer(path)
    sniffer.stop()
    assert sniffer.is_capturing() is False
    assert _data_rows(path) == []


def test_failed_open_reports_error(interfaces, tmp_path):
    fake = FakeSocket([], fail_bind=True)
    family_patch, socket_patch = _fake_socket_patches(fake)
    sniffer = PacketSniffer(tmp_path / "usage.csv")
    with family_patch, socket_patch:
        with pytest.raises(SnifferError, match="Cannot open device"):
            sniffer.start()
    assert fake.closed is True
    assert sniffer.is_capturing() is False


def test_capture_logs_final_row_on_stop(interfaces, tmp_path):
    path = tmp_path / "usage.csv"
    fake = FakeSocket([FRAME] * 3)
    family_patch, socket_patch = _fake_socket_patches(fake)
    sniffer = PacketSniffer(path, interval=60)
    with family_patch, socket_patch:
        sniffer.start()
        try:
            assert sniffer.is_capturing() is True
            with pytest.raises(SnifferError, match="Already capturing"):
                sniffer.start()
            assert _wait_for(lambda: sniffer.stats.packet_count == 3)
        finally:
            sniffer.stop()
    assert sniffer.is_capturing() is False
    assert fake.bound == ("wlan0", 0)
    assert fake.closed is True
    rows = _data_rows(path)
    assert len(rows) == 1
    assert int(rows[0][0]) == 3
    assert int(rows[0][1]) == 3 * len(FRAME)
    assert sniffer.stats.packet_count == 0


def test_periodic_rows_account_for_every_frame(interfaces, tmp_path):
    path = tmp_path / "usage.csv"
    fake = FakeSocket([FRAME] * 3)
    family_patch, socket_patch = _fake_socket_patches(fake)
    sniffer = PacketSniffer(path, interval=0.05)
    with family_patch, socket_patch:
        sniffer.start()
        try:
            assert _wait_for(lambda: not fake.frames)
            time.sleep(0.2)
        finally:
            sniffer.stop()
    rows = _data_rows(path)
    assert len(rows) >= 2
    assert sum(int(row[0]) for row in rows) == 3