# =============================================================================
# Author      : awiones
# Created     : 2025-02-18
# License     : GNU General Public License v3.0
# Description : TCP port prober for CamScan. Fingerprints RTSP services by
#               sending an OPTIONS request and checking the response prefix.
# =============================================================================


import logging
import socket
from dataclasses import dataclass

RTSP_PROBE = b"OPTIONS * RTSP/1.0\r\nCSeq: 1\r\nContent-Length: 0\r\n\r\n"
RTSP_TAG = b"RTSP"
BANNER_SIZE = 256


@dataclass
class PortStatus:
    host: str
    port: int
    is_open: bool = False
    is_rtsp: bool = False
    banner: str = ""


def is_port_rtsp(sock: socket.socket):
    """Send the OPTIONS probe and report (is_rtsp, raw banner)"""
    sock.sendall(RTSP_PROBE)
    response = sock.recv(BANNER_SIZE)
    return response[:4] == RTSP_TAG, response


def probe_port(host: str, port: int, timeout: float) -> PortStatus:
    """Classify host:port as closed, open, or open and speaking RTSP"""
    try:
        sock = socket.create_connection((host, port), timeout=timeout)
    except OSError as e:
        logging.debug(f"Port {host}:{port} closed: {e}")
        return PortStatus(host, port)

    try:
        sock.settimeout(timeout)
        is_rtsp, response = is_port_rtsp(sock)
    except OSError as e:
        logging.debug(f"Probe failed on open port {host}:{port}: {e}")
        return PortStatus(host, port, is_open=True)
    finally:
        sock.close()

    banner = response.decode('utf-8', errors='replace')
    if is_rtsp:
        logging.debug(f"RTSP service found on {host}:{port}")
    return PortStatus(host, port, is_open=True, is_rtsp=is_rtsp, banner=banner)
