"""Interactive command loop driving capture, log parsing and graphing."""

from __future__ import annotations

import argparse
import sys
from typing import TextIO

from webtracker.log_reader import LogReader, LogReaderError
from webtracker.sniffer import PacketSniffer, SnifferError

DEFAULT_LOG_FILE = "usage-data.csv"
PROMPT = "\nAvailable commands: start, stop, updatedata, graphtime, graphtime-map exit\n> "


def _ask_for_category(reader, out: TextIO) -> None:
    out.write("Please choose a category. \n")
    out.flush()
    reader.print_int_categories()


def dispatch(command: str, sniffer, reader, out: TextIO | None = None) -> bool:
    """Run one command; returns False when the loop should end."""
    out = sys.stdout if out is None else out
    try:
        if command == "start":
            sniffer.start()
        elif command == "stop":
            sniffer.stop()
        elif command == "updatedata":
            reader.parse_data()
        elif command.startswith("graphtime-map"):
            if len(command) > 14:
                reader.graph_over_time_with_map(command[14:])
            else:
                _ask_for_category(reader, out)
        elif command.startswith("graphtime"):
            if len(command) > 10:
                reader.graph_over_time(command[10:])
            else:
                _ask_for_category(reader, out)
        elif command in ("exit", "quit"):
            if sniffer.is_capturing():
                sniffer.stop()
            return False
        else:
            out.write("Unknown command.\n")
    except (SnifferError, LogReaderError) as exc:
        print(exc, file=sys.stderr)
    return True


def main(argv: list[str] | None = None) -> int:
    """Start the interactive tracker."""
    parser = argparse.ArgumentParser(
        prog="webtracker", description="Track network usage and graph it over time."
    )
    parser.add_argument("--file", default=DEFAULT_LOG_FILE, help="CSV usage log to write and read")
    args = parser.parse_args(argv)

    sniffer = PacketSniffer(args.file)
    reader = LogReader(args.file)
    while True:
        try:
            command = input(PROMPT)
        except EOFError:
            command = "exit"
        if not dispatch(command, sniffer, reader):
            break
    return 0


if __name__ == "__main__":
    sys.exit(main())