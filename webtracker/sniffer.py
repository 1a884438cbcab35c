"""Live capture of traffic on the machine's main interface, logged at intervals."""

from __future__ import annotations

import ipaddress
import os
import socket
import sys
import threading
from dataclasses import dataclass, field

import dns.exception
import dns.resolver
import psutil

from webtracker.logger import LOG_INTERVAL_SECONDS, CsvLogger
from webtracker.stats import PacketStats

ETH_P_ALL = 0x0003
MAX_FRAME_SIZE = 65535
RECV_TIMEOUT_SECONDS = 0.5


class SnifferError(Exception):
    """Capture could not be started."""


@dataclass
class NetworkInterface:
    """A network interface suitable for capturing."""

    name: str
    ipv4: str
    mac: str | None = None
    mtu: int | None = None
    dns_servers: list[str] = field(default_factory=list)


def _is_valid_ipv4(address: str) -> bool:
    try:
        parsed = ipaddress.IPv4Address(address)
    except ValueError:
        return False
    return parsed != ipaddress.IPv4Address(0)


def _dns_servers() -> list[str]:
    try:
        return list(dns.resolver.Resolver().nameservers)
    except (dns.exception.DNSException, OSError):
        return []


def find_capture_interface() -> NetworkInterface | None:
    """The first non-loopback interface whose IPv4 address is valid and not 0.0.0.0."""
    addresses = psutil.net_if_addrs()
    interface_stats = psutil.net_if_stats()
    for name, entries in addresses.items():
        stats = interface_stats.get(name)
        if stats is not None and "loopback" in (getattr(stats, "flags", "") or ""):
            continue
        ipv4 = next((entry.address for entry in entries if entry.family == socket.AF_INET), None)
        if ipv4 is None or not _is_valid_ipv4(ipv4):
            continue
        if ipaddress.IPv4Address(ipv4).is_loopback:
            continue
        mac = next((entry.address for entry in entries if entry.family == psutil.AF_LINK), None)
        return NetworkInterface(
            name=name,
            ipv4=ipv4,
            mac=mac,
            mtu=stats.mtu if stats is not None else None,
            dns_servers=_dns_servers(),
        )
    return None


def _describe(interface: NetworkInterface) -> str:
    lines = [
        "Interface info:",
        f"   Interface name:        {interface.name}",
        f"   MAC address:           {interface.mac or 'unknown'}",
        f"   Interface MTU:         {interface.mtu if interface.mtu is not None else 'unknown'}",
    ]
    if interface.dns_servers:
        lines.append(f"   DNS server:            {interface.dns_servers[0]}")
    return "\n".join(lines)


class PacketSniffer:
    """Captures frames in the background and appends a statistics row every interval."""

    def __init__(self, file_name: str | os.PathLike, interval: float = LOG_INTERVAL_SECONDS) -> None:
        self.stats = PacketStats()
        self.interval = interval
        self._logger = CsvLogger(file_name)
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._capturing = False
        self._socket: socket.socket | None = None
        self._threads: list[threading.Thread] = []

        self.interface = find_capture_interface()
        if self.interface is None:
            print("Unable to locate device to sniff", file=sys.stderr)
        else:
            print(f"Connected to: {self.interface.ipv4}")
            print(_describe(self.interface))

    def _open_socket(self) -> socket.socket:
        family = getattr(socket, "AF_PACKET", None)
        if family is None:
            raise SnifferError("Cannot open device: raw packet capture is not supported here")
        try:
            sock = socket.socket(family, socket.SOCK_RAW, socket.htons(ETH_P_ALL))
        except OSError as exc:
            raise SnifferError(f"Cannot open device: {exc}") from exc
        try:
            sock.bind((self.interface.name, 0))
            sock.settimeout(RECV_TIMEOUT_SECONDS)
        except OSError as exc:
            sock.close()
            raise SnifferError(f"Cannot open device: {exc}") from exc
        return sock

    def start(self) -> None:
        """Open the interface and start the capture and logging threads."""
        if self._capturing:
            raise SnifferError("Already capturing packets")
        if self.interface is None:
            raise SnifferError("Unable to locate device to sniff")
        sock = self._open_socket()
        print("\nStarting packet capture...")

        self._socket = sock
        self._stop_event.clear()
        self._threads = [
            threading.Thread(target=self._capture_loop, args=(sock,), name="capture", daemon=True),
            threading.Thread(target=self._log_loop, name="stats-logger", daemon=True),
        ]
        for thread in self._threads:
            thread.start()
        self._capturing = True

    def stop(self) -> None:
        """Stop capturing, write the last interval's row and close the interface."""
        if not self._capturing:
            return
        self._stop_event.set()
        for thread in self._threads:
            thread.join()
        self._threads = []
        if self._socket is not None:
            self._socket.close()
            self._socket = None
        self._log_interval()
        self._capturing = False
        print("Packet capture stopped")

    def is_capturing(self) -> bool:
        """Whether a capture session is running."""
        return self._capturing

    def _capture_loop(self, sock: socket.socket) -> None:
        while not self._stop_event.is_set():
            try:
                frame = sock.recv(MAX_FRAME_SIZE)
            except socket.timeout:
                continue
            except OSError:
                break
            if not frame:
                continue
            with self._lock:
                self.stats.consume_packet(frame)

    def _log_loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            self._log_interval()

    def _log_interval(self) -> None:
        with self._lock:
            self._logger.log_stats(self.stats)
            self.stats.clear()
            self._logger.flush()