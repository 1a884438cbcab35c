import ipaddress
import struct

import dns.message
import dns.rrset

from webtracker.packets import DnsInfo, ParsedPacket, parse_packet

SRC_MAC = bytes.fromhex("020000000001")
DST_MAC = bytes.fromhex("020000000002")


def ethernet(ethertype, payload, vlan=None):
    header = DST_MAC + SRC_MAC
    if vlan is not None:
        header += struct.pack("!HH", 0x8100, vlan)
    return header + struct.pack("!H", ethertype) + payload


def ipv4(protocol, payload, src="192.0.2.20", dst="192.0.2.10"):
    header = struct.pack(
        "!BBHHHBBH4s4s",
        0x45, 0, 20 + len(payload), 1, 0, 64, protocol, 0,
        ipaddress.IPv4Address(src).packed, ipaddress.IPv4Address(dst).packed,
    )
    return header + payload


def ipv6(next_header, payload):
    header = struct.pack("!IHBB", 6 << 28, len(payload), next_header, 64)
    header += ipaddress.IPv6Address("2001:db8::1").packed
    header += ipaddress.IPv6Address("2001:db8::2").packed
    return header + payload


def udp(src_port, dst_port, payload):
    return struct.pack("!HHHH", src_port, dst_port, 8 + len(payload), 0) + payload


def tcp(src_port, dst_port, payload):
    return struct.pack("!HHIIBBHHH", src_port, dst_port, 0, 0, 5 << 4, 0x18, 1024, 0, 0) + payload


def test_short_frame_has_no_layers():
    packet = parse_packet(b"\x00" * 10)
    assert packet == ParsedPacket(length=10)


def test_non_ip_frame_is_ethernet_only():
    packet = parse_packet(ethernet(0x0806, b"\x00" * 28))
    assert packet.has_ethernet
    assert not packet.has_ipv4 and not packet.has_ipv6
    assert packet.length == 14 + 28


def test_udp_dns_query():
    query = dns.message.make_query("example.com", "A").to_wire()
    packet = parse_packet(ethernet(0x0800, ipv4(17, udp(40000, 53, query))))
    assert packet.has_ipv4 and packet.has_udp and not packet.has_tcp
    assert packet.ipv4_dst == "192.0.2.10"
    assert packet.dns == DnsInfo(query_name="example.com", a_records=[])


def test_dns_response_a_records():
    query = dns.message.make_query("example.com", "A")
    response = dns.message.make_response(query)
    response.answer.append(
        dns.rrset.from_text("example.com.", 300, "IN", "A", "192.0.2.1")
    )
    frame = ethernet(0x0800, ipv4(17, udp(53, 40000, response.to_wire())))
    packet = parse_packet(frame)
    assert packet.dns.query_name == "example.com"
    assert packet.dns.a_records == [("example.com", "192.0.2.1")]


def test_malformed_dns_still_counts_as_dns():
    bogus = struct.pack("!HHHHHH", 1, 0, 1, 0, 0, 0)
    packet = parse_packet(ethernet(0x0800, ipv4(17, udp(40000, 53, bogus))))
    assert packet.dns == DnsInfo()


def test_dns_too_short_is_not_dns():
    packet = parse_packet(ethernet(0x0800, ipv4(17, udp(40000, 53, b"\x00\x01"))))
    assert packet.has_udp
    assert packet.dns is None


def test_http_request_and_response():
    request = parse_packet(
        ethernet(0x0800, ipv4(6, tcp(50000, 80, b"GET / HTTP/1.1\r\nHost: example.com\r\n\r\n")))
    )
    assert request.has_tcp and request.is_http_request and not request.is_http_response

    response = parse_packet(
        ethernet(0x0800, ipv4(6, tcp(80, 50000, b"HTTP/1.1 200 OK\r\n\r\n")))
    )
    assert response.is_http_response and not response.is_http_request


def test_http_on_other_port_is_not_http():
    packet = parse_packet(ethernet(0x0800, ipv4(6, tcp(50000, 9999, b"GET / HTTP/1.1\r\n\r\n"))))
    assert packet.has_tcp
    assert not packet.is_http_request


def test_tls_record_on_443():
    packet = parse_packet(ethernet(0x0800, ipv4(6, tcp(50000, 443, b"\x16\x03\x01\x00\x05hello"))))
    assert packet.is_ssl
    not_tls = parse_packet(ethernet(0x0800, ipv4(6, tcp(50000, 443, b"plain text"))))
    assert not not_tls.is_ssl


def test_ipv6_udp():
    packet = parse_packet(ethernet(0x86DD, ipv6(17, udp(1000, 2000, b"data"))))
    assert packet.has_ipv6 and packet.has_udp
    assert not packet.has_ipv4
    assert packet.ipv4_dst is None


def test_vlan_tagged_frame():
    packet = parse_packet(ethernet(0x0800, ipv4(6, tcp(1, 2, b"")), vlan=5))
    assert packet.has_ipv4 and packet.has_tcp
    assert packet.ipv4_dst == "192.0.2.10"