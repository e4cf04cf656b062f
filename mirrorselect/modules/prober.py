"""ICMP reachability prober.

Sends a small burst of ICMP echo requests to one host over a raw socket
and reports the mean round-trip time. Any lost packet disqualifies the
host: partial results are never averaged.
"""

import itertools
import logging
import math
import os
import socket
import struct
import time

from mirrorselect.modules.errors import PacketLossError, PrivilegeError, UnreachableError

logger = logging.getLogger(__name__)

ICMP_ECHO_REPLY = 0
ICMP_ECHO_REQUEST = 8

# Identifiers are unique per probe so concurrent probes on one raw socket
# family never consume each other's replies.
_identifiers = itertools.count(os.getpid() & 0xFFFF)


def checksum(data: bytes) -> int:
    """RFC 1071 internet checksum."""
    if len(data) % 2:
        data += b"\x00"
    total = sum(struct.unpack(f"!{len(data) // 2}H", data))
    total = (total >> 16) + (total & 0xFFFF)
    total += total >> 16
    return ~total & 0xFFFF


def build_echo_request(ident: int, seq: int, payload: bytes) -> bytes:
    header = struct.pack("!BBHHH", ICMP_ECHO_REQUEST, 0, 0, ident, seq)
    csum = checksum(header + payload)
    return struct.pack("!BBHHH", ICMP_ECHO_REQUEST, 0, csum, ident, seq) + payload


def parse_echo_reply(data: bytes) -> tuple[int, int] | None:
    """Return ``(ident, seq)`` of an echo reply, or None for anything else.

    Raw IPv4 sockets deliver the IP header too, so skip it first.
    """
    if not data:
        return None
    ihl = (data[0] & 0x0F) * 4
    if len(data) < ihl + 8:
        return None
    icmp_type, _code, _csum, ident, seq = struct.unpack_from("!BBHHH", data, ihl)
    if icmp_type != ICMP_ECHO_REPLY:
        return None
    return ident, seq


class Prober:
    """Measures round-trip latency to a host with ICMP echo."""

    PAYLOAD_SIZE = 56

    def __init__(self, count: int = 1, timeout: float = 1.0):
        if count < 1:
            raise ValueError("probe count must be at least 1")
        if timeout <= 0:
            raise ValueError("probe timeout must be positive")
        self.count = count
        self.timeout = timeout

    # -- public API ----------------------------------------------------------

    def probe(self, host: str) -> int:
        """Return the mean RTT to *host* in whole milliseconds (floored).

        Raises UnreachableError, PacketLossError or PrivilegeError.
        """
        addr = self._resolve(host)
        sock = self._open_socket(host)
        try:
            rtts = self._exchange(sock, host, addr)
        finally:
            sock.close()
        latency = self._summarise(host, rtts)
        logger.debug("Probe %s (%s): %d ms", host, addr, latency)
        return latency

    def check_privileges(self) -> None:
        """Raise PrivilegeError if raw ICMP sockets cannot be opened."""
        self._open_socket("localhost").close()

    # -- internals -----------------------------------------------------------

    @staticmethod
    def _resolve(host: str) -> str:
        try:
            return socket.gethostbyname(host)
        except (OSError, UnicodeError) as exc:
            raise UnreachableError(host, f"cannot resolve: {exc}") from exc

    @staticmethod
    def _open_socket(host: str) -> socket.socket:
        try:
            return socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP)
        except PermissionError as exc:
            raise PrivilegeError(
                host, "raw ICMP sockets need root or CAP_NET_RAW"
            ) from exc
        except OSError as exc:
            raise UnreachableError(host, f"cannot open socket: {exc}") from exc

    def _exchange(self, sock: socket.socket, host: str, addr: str) -> list[float]:
        ident = next(_identifiers) & 0xFFFF
        payload = b"\x00" * self.PAYLOAD_SIZE
        sent: dict[int, float] = {}
        rtts: dict[int, float] = {}

        deadline = time.perf_counter() + self.timeout
        try:
            for seq in range(self.count):
                sent[seq] = time.perf_counter()
                sock.sendto(build_echo_request(ident, seq, payload), (addr, 0))
        except OSError as exc:
            raise UnreachableError(host, f"send failed: {exc}") from exc

        while len(rtts) < self.count:
            remaining = deadline - time.perf_counter()
            if remaining <= 0:
                break
            sock.settimeout(remaining)
            try:
                data, source = sock.recvfrom(1024)
            except socket.timeout:
                break
            except OSError as exc:
                raise UnreachableError(host, f"receive failed: {exc}") from exc
            received = time.perf_counter()

            reply = parse_echo_reply(data)
            if reply is None or source[0] != addr:
                continue
            r_ident, r_seq = reply
            if r_ident != ident or r_seq not in sent or r_seq in rtts:
                continue
            rtts[r_seq] = received - sent[r_seq]

        return list(rtts.values())

    def _summarise(self, host: str, rtts: list[float]) -> int:
        if not rtts:
            raise UnreachableError(host, f"no reply within {self.timeout}s")
        lost = self.count - len(rtts)
        if lost:
            raise PacketLossError(host, lost / self.count * 100)
        return math.floor(sum(rtts) / len(rtts) * 1000)
