"""Decoding of raw Ethernet frames into the protocol facts the statistics need."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field

import dns.exception
import dns.message
import dns.rdatatype

ETHERTYPE_IPV4 = 0x0800
ETHERTYPE_IPV6 = 0x86DD
VLAN_ETHERTYPES = frozenset({0x8100, 0x88A8})

PROTO_TCP = 6
PROTO_UDP = 17
IPV6_EXTENSION_HEADERS = frozenset({0, 43, 60})

ETHERNET_HEADER_LEN = 14
DNS_HEADER_LEN = 12

DNS_UDP_PORTS = frozenset({53, 5353, 5355})
DNS_TCP_PORTS = frozenset({53})
HTTP_PORTS = frozenset({80, 8080})
SSL_PORTS = frozenset({261, 443, 448, 465, 563, 614, 636, 989, 990, 992, 993, 994, 995})

HTTP_METHODS = (
    b"GET", b"HEAD", b"POST", b"PUT", b"DELETE", b"TRACE",
    b"OPTIONS", b"CONNECT", b"PATCH",
)
HTTP_RESPONSE_PREFIXES = (b"HTTP/1.0 ", b"HTTP/1.1 ")


@dataclass
class DnsInfo:
    """What a DNS message tells about names: the first question and its A answers."""

    query_name: str | None = None
    a_records: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class ParsedPacket:
    """The layers found in one captured frame."""

    length: int = 0
    has_ethernet: bool = False
    has_ipv4: bool = False
    ipv4_dst: str | None = None
    has_ipv6: bool = False
    has_tcp: bool = False
    has_udp: bool = False
    dns: DnsInfo | None = None
    is_http_request: bool = False
    is_http_response: bool = False
    is_ssl: bool = False


def parse_packet(data: bytes) -> ParsedPacket:
    """Decode an Ethernet frame, recording every layer that is recognised."""
    data = bytes(data)
    packet = ParsedPacket(length=len(data))
    if len(data) < ETHERNET_HEADER_LEN:
        return packet
    packet.has_ethernet = True

    ethertype = int.from_bytes(data[12:14], "big")
    offset = ETHERNET_HEADER_LEN
    while ethertype in VLAN_ETHERTYPES and len(data) >= offset + 4:
        ethertype = int.from_bytes(data[offset + 2:offset + 4], "big")
        offset += 4
    network = data[offset:]

    if ethertype == ETHERTYPE_IPV4:
        transport = _parse_ipv4(packet, network)
    elif ethertype == ETHERTYPE_IPV6:
        transport = _parse_ipv6(packet, network)
    else:
        return packet
    if transport is None:
        return packet

    protocol, segment = transport
    if protocol == PROTO_TCP:
        _parse_tcp(packet, segment)
    elif protocol == PROTO_UDP:
        _parse_udp(packet, segment)
    return packet


def _parse_ipv4(packet: ParsedPacket, data: bytes) -> tuple[int, bytes] | None:
    if len(data) < 20 or data[0] >> 4 != 4:
        return None
    header_len = (data[0] & 0x0F) * 4
    if header_len < 20 or len(data) < header_len:
        return None
    packet.has_ipv4 = True
    packet.ipv4_dst = str(ipaddress.IPv4Address(data[16:20]))

    total_len = int.from_bytes(data[2:4], "big")
    if header_len <= total_len <= len(data):
        data = data[:total_len]
    if int.from_bytes(data[6:8], "big") & 0x1FFF:
        # A later fragment carries no transport header.
        return None
    return data[9], data[header_len:]


def _parse_ipv6(packet: ParsedPacket, data: bytes) -> tuple[int, bytes] | None:
    if len(data) < 40 or data[0] >> 4 != 6:
        return None
    packet.has_ipv6 = True
    next_header = data[6]
    offset = 40
    while next_header in IPV6_EXTENSION_HEADERS:
        if len(data) < offset + 8:
            return None
        next_header = data[offset]
        offset += (data[offset + 1] + 1) * 8
    return next_header, data[offset:]


def _parse_tcp(packet: ParsedPacket, segment: bytes) -> None:
    if len(segment) < 20:
        return
    header_len = (segment[12] >> 4) * 4
    if header_len < 20 or len(segment) < header_len:
        return
    packet.has_tcp = True
    src_port = int.from_bytes(segment[0:2], "big")
    dst_port = int.from_bytes(segment[2:4], "big")
    payload = segment[header_len:]
    if not payload:
        return

    if src_port in DNS_TCP_PORTS or dst_port in DNS_TCP_PORTS:
        packet.dns = _parse_dns(payload[2:])
    elif dst_port in HTTP_PORTS and _is_http_request(payload):
        packet.is_http_request = True
    elif src_port in HTTP_PORTS and payload.startswith(HTTP_RESPONSE_PREFIXES):
        packet.is_http_response = True
    elif (src_port in SSL_PORTS or dst_port in SSL_PORTS) and _is_ssl_record(payload):
        packet.is_ssl = True


def _parse_udp(packet: ParsedPacket, segment: bytes) -> None:
    if len(segment) < 8:
        return
    packet.has_udp = True
    src_port = int.from_bytes(segment[0:2], "big")
    dst_port = int.from_bytes(segment[2:4], "big")
    if src_port in DNS_UDP_PORTS or dst_port in DNS_UDP_PORTS:
        packet.dns = _parse_dns(segment[8:])


def _is_http_request(payload: bytes) -> bool:
    return any(payload.startswith(method + b" ") for method in HTTP_METHODS)


def _is_ssl_record(payload: bytes) -> bool:
    return (
        len(payload) >= 5
        and 20 <= payload[0] <= 24
        and payload[1] == 3
        and payload[2] <= 4
    )


def _parse_dns(payload: bytes) -> DnsInfo | None:
    if len(payload) < DNS_HEADER_LEN:
        return None
    info = DnsInfo()
    try:
        message = dns.message.from_wire(payload, ignore_trailing=True)
    except (dns.exception.DNSException, ValueError):
        return info
    if message.question:
        info.query_name = message.question[0].name.to_text(omit_final_dot=True)
    for rrset in message.answer:
        if rrset.rdtype != dns.rdatatype.A:
            continue
        name = rrset.name.to_text(omit_final_dot=True)
        info.a_records.extend((name, rdata.address) for rdata in rrset)
    return info