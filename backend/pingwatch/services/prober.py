"""ICMP probe runner built on the system ping binary."""
import asyncio
import logging
import math
import platform
import re
import socket
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

IS_WINDOWS = platform.system().lower() == "windows"

UNKNOWN_HOST_PATTERNS = (
    "unknown host",
    "name or service not known",
    "could not find host",
    "temporary failure in name resolution",
)


class ProbeTransportError(Exception):
    """The probe could not be attempted (ping missing, permission denied, ...)."""


@dataclass(frozen=True)
class ProbeOutcome:
    """Classified result of one probe attempt.

    ``unresolved`` outcomes never reached the network. Completed outcomes
    carry the packet-loss flag and the maximum round-trip time in ms, which is
    0.0 when nothing came back.
    """
    unresolved: bool = False
    packet_loss: bool = False
    max_rtt_ms: float = 0.0

    @classmethod
    def resolution_failure(cls) -> "ProbeOutcome":
        return cls(unresolved=True)

    @classmethod
    def completed(cls, packet_loss: bool, max_rtt_ms: float) -> "ProbeOutcome":
        return cls(unresolved=False, packet_loss=packet_loss, max_rtt_ms=max_rtt_ms)


def build_ping_command(ip: str, timeout: float, is_windows: bool = IS_WINDOWS) -> List[str]:
    """Command line for a single echo request to ``ip``."""
    if is_windows:
        return ["ping", "-n", "1", "-w", str(max(1, int(timeout * 1000))), ip]
    return ["ping", "-c", "1", "-W", str(max(1, math.ceil(timeout))), ip]


def parse_ping_output(output: str, is_windows: bool = IS_WINDOWS) -> ProbeOutcome:
    """Turn ping's summary lines into a completed outcome."""
    loss_pct = 100.0

    if is_windows:
        # Windows: "Packets: Sent = 1, Received = 1, Lost = 0 (0% loss)"
        loss_match = re.search(r"Lost\s*=\s*\d+\s*\((\d+)%\s*loss\)", output)
    else:
        # Linux: "1 packets transmitted, 1 received, 0% packet loss"
        loss_match = re.search(r"(\d+(?:\.\d+)?)%\s*packet loss", output)

    if loss_match:
        loss_pct = float(loss_match.group(1))

    rtt_max = 0.0
    if is_windows:
        # Windows: "Minimum = 1ms, Maximum = 3ms, Average = 2ms"
        rtt_match = re.search(r"Maximum\s*=\s*(\d+)ms", output)
        if rtt_match:
            rtt_max = float(rtt_match.group(1))
    else:
        # Linux: "rtt min/avg/max/mdev = 0.123/0.456/0.789/0.123 ms"
        # macOS: "round-trip min/avg/max/stddev = 0.123/0.456/0.789/0.123 ms"
        rtt_match = re.search(r"min/avg/max/\S+\s*=\s*([\d.]+)/([\d.]+)/([\d.]+)", output)
        if rtt_match:
            rtt_max = float(rtt_match.group(3))

    return ProbeOutcome.completed(packet_loss=loss_pct > 0, max_rtt_ms=rtt_max)


async def resolve_address(address: str, timeout: float) -> Optional[str]:
    """Resolve a hostname or literal to one IP address, or None."""
    loop = asyncio.get_running_loop()
    try:
        infos = await asyncio.wait_for(
            loop.getaddrinfo(address, None, type=socket.SOCK_DGRAM),
            timeout=timeout,
        )
    except (socket.gaierror, UnicodeError, asyncio.TimeoutError) as e:
        logger.debug("Resolve %s failed: %s", address, e)
        return None
    if not infos:
        return None
    return infos[0][4][0]


def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass


async def ping_target(address: str, timeout: float) -> ProbeOutcome:
    """Send one ICMP echo to ``address`` and classify the result within ``timeout`` seconds.

    Raises ProbeTransportError when ping cannot be run at all.
    """
    loop = asyncio.get_running_loop()
    started = loop.time()

    ip = await resolve_address(address, timeout)
    if ip is None:
        return ProbeOutcome.resolution_failure()

    remaining = max(timeout - (loop.time() - started), 0.001)
    cmd = build_ping_command(ip, remaining)

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ProbeTransportError(f"cannot run ping for {address}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=remaining)
    except asyncio.TimeoutError:
        _kill(proc)
        await proc.wait()
        return ProbeOutcome.completed(packet_loss=True, max_rtt_ms=0.0)
    except asyncio.CancelledError:
        _kill(proc)
        raise

    output = stdout.decode("utf-8", errors="replace")
    if proc.returncode not in (0, 1):
        error = stderr.decode("utf-8", errors="replace").strip() or output.strip()
        if any(p in error.lower() for p in UNKNOWN_HOST_PATTERNS):
            return ProbeOutcome.resolution_failure()
        raise ProbeTransportError(f"ping {address} exited with {proc.returncode}: {error}")

    return parse_ping_output(output)
