#!/usr/bin/env python3
"""
my_ping.py - Ping an IPv4 host with ICMP echo requests over a raw socket.

Sends one echo request per second and prints a line for every reply and
for every probe that was not answered within five probe intervals::

    reply seq=3 ttl=57 time=12.41ms
    ...
    timeout seq=4

Sequence numbers start at 1 and keep counting past 65535; only the copy
in the packet wraps to 16 bits, so lines printed after the wrap show
65536, 65537 and so on.

Usage:
    sudo python my_ping.py [-v] <addr>

Requires root/administrator privileges to use raw sockets.
"""

import argparse
import logging
import os
import socket
import sys

from ping_session import (
    AddressError,
    PeriodicTimer,
    PingError,
    PingSession,
    Poller,
    create_socket,
)

VERSION = "0.1.0"

logger = logging.getLogger(__name__)


class UsageError(Exception):
    """Raised instead of exiting when the command line cannot be parsed."""


class ArgumentParser(argparse.ArgumentParser):
    """Argument parser that leaves the exit status to ``main``."""

    def error(self, message: str) -> None:
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser.

    ``--help`` and ``--version`` are plain flags so that ``main`` can print
    their text to stderr and let them win over any other argument. Options
    must be spelled out in full.

    Returns:
        Configured argument parser.
    """
    parser = ArgumentParser(
        prog="my_ping",
        description="Ping: send ICMP echo requests to an IPv4 host.",
        add_help=False,
        allow_abbrev=False,
    )
    parser.add_argument(
        "addr",
        nargs="*",
        help="Dotted-decimal IPv4 address of the target host.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Log dropped datagrams and other diagnostics to stderr.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        default=False,
        help="Show version and exit.",
    )
    parser.add_argument(
        "--help",
        action="store_true",
        default=False,
        help="Show this help text and exit.",
    )
    return parser


def check_address(addr: str) -> str:
    """Validate *addr* as a dotted-decimal IPv4 address.

    Args:
        addr: Address given on the command line.

    Returns:
        The address, unchanged.

    Raises:
        AddressError: If *addr* is not a valid IPv4 address.
    """
    try:
        socket.inet_pton(socket.AF_INET, addr)
    except OSError as exc:
        raise AddressError(f"invalid IPv4 address: {addr!r}") from exc
    return addr


def ping(addr: str) -> None:
    """Ping *addr* until a fatal error occurs.

    Args:
        addr: Dotted-decimal IPv4 address of the target host.

    Raises:
        PingError: On any fatal socket or address error.
    """
    target = check_address(addr)
    sock = create_socket()
    try:
        timer = PeriodicTimer()
        session = PingSession(sock, target, identifier=os.getpid())
        logger.info("pinging %s with identifier %d", target, session.identifier)
        session.run(Poller(sock, timer))
    finally:
        sock.close()


def main(argv: list[str] | None = None) -> int:
    """Entry point for my_ping.

    Returns:
        Process exit status.
    """
    parser = build_parser()
    try:
        args, extra = parser.parse_known_args(argv)
    except UsageError as exc:
        logger.debug("usage error: %s", exc)
        parser.print_help(sys.stderr)
        return 1

    if args.help:
        parser.print_help(sys.stderr)
        return 0
    if args.version:
        print(f"version {VERSION}", file=sys.stderr)
        return 0
    if extra or len(args.addr) != 1:
        parser.print_help(sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        ping(args.addr[0])
    except PingError as exc:
        print(f"my_ping: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
