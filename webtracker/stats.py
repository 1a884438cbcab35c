"""Accumulated per-interval statistics of captured traffic."""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field

from webtracker.packets import ParsedPacket, parse_packet


@dataclass
class PacketStats:
    """Protocol counters, byte totals, processing time and DNS-derived domain counts."""

    packet_count: int = 0
    eth_packet_count: int = 0
    ipv4_packet_count: int = 0
    ipv6_packet_count: int = 0
    tcp_packet_count: int = 0
    udp_packet_count: int = 0
    dns_packet_count: int = 0
    http_request_packet_count: int = 0
    http_response_packet_count: int = 0
    ssl_packet_count: int = 0
    total_time_ns: int = 0
    total_bytes: int = 0
    domain_count: Counter = field(default_factory=Counter)
    ipv4_count: Counter = field(default_factory=Counter)
    ipv4_to_domain: dict[str, str] = field(default_factory=dict)

    def clear(self) -> None:
        """Reset the interval counters; the learned IP-to-domain map is kept."""
        self.packet_count = 0
        self.eth_packet_count = 0
        self.ipv4_packet_count = 0
        self.ipv6_packet_count = 0
        self.tcp_packet_count = 0
        self.udp_packet_count = 0
        self.dns_packet_count = 0
        self.http_request_packet_count = 0
        self.http_response_packet_count = 0
        self.ssl_packet_count = 0
        self.total_bytes = 0
        self.total_time_ns = 0
        self.domain_count.clear()
        self.ipv4_count.clear()

    def consume_packet(self, packet: ParsedPacket | bytes) -> None:
        """Fold one packet (parsed, or a raw frame) into the statistics."""
        start = time.perf_counter_ns()
        if not isinstance(packet, ParsedPacket):
            packet = parse_packet(packet)

        self.total_bytes += packet.length
        self.packet_count += 1

        if packet.has_ethernet:
            self.eth_packet_count += 1
        if packet.has_ipv4:
            self.ipv4_packet_count += 1
            if packet.ipv4_dst is not None:
                self.ipv4_count[packet.ipv4_dst] += 1
                domain = self.ipv4_to_domain.get(packet.ipv4_dst)
                if domain is not None:
                    self.domain_count[domain] += 1
        if packet.has_tcp:
            self.tcp_packet_count += 1
        if packet.is_http_request:
            self.http_request_packet_count += 1
        if packet.is_http_response:
            self.http_response_packet_count += 1
        if packet.has_ipv6:
            self.ipv6_packet_count += 1
        if packet.has_udp:
            self.udp_packet_count += 1
        if packet.dns is not None:
            self.dns_packet_count += 1
            if packet.dns.query_name is not None:
                self.domain_count[packet.dns.query_name] += 1
            for domain, ip in packet.dns.a_records:
                self.ipv4_to_domain[ip] = domain
        if packet.is_ssl:
            self.ssl_packet_count += 1

        self.total_time_ns += time.perf_counter_ns() - start

    def top_domains(self, limit: int = 5) -> list[tuple[str, int]]:
        """The busiest domains, highest count first, at most ``limit`` of them."""
        ranked = sorted(self.domain_count.items(), key=lambda item: item[1], reverse=True)
        return ranked[:max(limit, 0)]

    def summary(self) -> str:
        """Return the counters as aligned text, one per line."""
        average = self.total_time_ns // self.packet_count if self.packet_count else 0
        rows = [
            ("PACKET COUNT:", self.packet_count),
            ("TOTAL BYTES:", self.total_bytes),
            ("TOTAL TIME:", f"{self.total_time_ns}ns"),
            ("AVERAGE TIME:", f"{average}ns"),
            ("Ethernet packet count:", self.eth_packet_count),
            ("IPv4 packet count:", self.ipv4_packet_count),
            ("IPv6 packet count:", self.ipv6_packet_count),
            ("TCP packet count:", self.tcp_packet_count),
            ("UDP packet count:", self.udp_packet_count),
            ("DNS packet count:", self.dns_packet_count),
            ("HTTP response packet count:", self.http_response_packet_count),
            ("HTTP request packet count:", self.http_request_packet_count),
            ("SSL packet count:", self.ssl_packet_count),
        ]
        return "\n".join(f"{label:<29}{value}" for label, value in rows)

    def print_to_console(self) -> None:
        """Print the summary to standard output."""
        print(self.summary())