# webtracker

webtracker watches traffic on your machine's main network interface. It picks
the first interface that is not a loopback and has a valid IPv4 address other
than `0.0.0.0`. While capture runs, it appends a row of statistics to a CSV log
every ten seconds. It writes one more row when capture stops. You can load the
log later and plot any numeric column against time.

## What a row holds

Each row has these columns:

| Column | Content |
|--------|---------|
| `packet_count` | packets seen in the interval |
| `total_bytes` | bytes seen in the interval |
| `eth_packet_count` | Ethernet packets |
| `ipv4_packet_count` | IPv4 packets |
| `ipv6_packet_count` | IPv6 packets |
| `tcp_packet_count` | TCP packets |
| `udp_packet_count` | UDP packets |
| `dns_packet_count` | DNS packets |
| `http_request_packet_count` | HTTP request packets |
| `http_response_packet_count` | HTTP response packets |
| `ssl_packet_count` | SSL/TLS record packets |
| `packets_per_second (throughput)` | `packet_count` divided by 10 |
| `latency_ns` | average time spent processing one packet, in nanoseconds |
| `timestamp_ns` | wall-clock time the row was written |
| `top_domain_1` … `top_domain_5` | the busiest domains, written as `domain-count` |

A domain is counted in two cases:

- it appears as the first question of a DNS message
- an IPv4 packet goes to an address that an earlier DNS A answer tied to that domain

The header is written only when the log file is created. Later runs append to
the same file.

## Installation

```
pip install .
```

## Usage

Start the interactive shell:

```
webtracker
```

By default the shell writes and reads `usage-data.csv` in the current
directory. To use another file, pass `--file PATH`.

The shell takes these commands:

| Command                     | Effect                                                          |
|-----------------------------|-----------------------------------------------------------------|
| `start`                     | begin capturing in the background                               |
| `stop`                      | stop capturing and write the final row                          |
| `updatedata`                | read the log into memory                                        |
| `graphtime <category>`      | plot a numeric column against seconds since the first row       |
| `graphtime-map <category>`  | plot the same, save it as `plot.png` and open it in the default viewer |
| `exit` / `quit`             | stop any capture and leave                                      |

The numeric categories are every column listed above from `packet_count` to
`latency_ns`. If you give `graphtime` or `graphtime-map` without a category,
the shell lists them. Errors are printed to standard error. This covers a
category that is not numeric and graphing before `updatedata`. The shell keeps
running after an error.

## Library use

```python
from webtracker.log_reader import LogReader

reader = LogReader("usage-data.csv")
if reader.parse_data():
    print(reader.column("packet_count"))
    reader.graph_over_time_with_map("total_bytes")
```

`parse_data` returns `False` when the log has no data rows. It raises
`LogReaderError` when the file cannot be read. Numeric columns come back as
integers. Unparsable numeric cells become `0`. `timestamp_ns` comes back as
whole seconds since the first row.

The package has these modules:

- `webtracker.packets`: `parse_packet(data)` decodes a raw Ethernet frame into a `ParsedPacket`. The result records the layers it found and any `DnsInfo`.
- `webtracker.stats`: `PacketStats` accumulates per-interval counters. It has the methods `consume_packet`, `top_domains`, `summary` and `clear`. `clear` keeps the learned IP-to-domain map.
- `webtracker.logger`: `CsvLogger` appends rows built by `format_row`. It can be used as a context manager.
- `webtracker.log_reader`: `LogReader`, `LogReaderError` and `count_csv_rows`.
- `webtracker.sniffer`: `PacketSniffer` has the methods `start`, `stop` and `is_capturing`. The module also has `find_capture_interface` and `SnifferError`.
- `webtracker.cli`: `main` and `dispatch`, which the shell uses.

## Limitations

- Capture uses `AF_PACKET` raw sockets, so it works only on Linux. It needs root or `CAP_NET_RAW`. Elsewhere, `start` reports that the device cannot be opened.
- Traffic is classed by well-known ports and payload prefixes, so:
  - HTTP is detected only on ports 80 and 8080.
  - SSL/TLS is detected only on its usual ports.
  - DNS is detected only on ports 53, 5353 and 5355.
- Packets are not stored. Only the per-interval counters reach the log.