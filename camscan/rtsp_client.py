# =============================================================================
# Author      : awiones
# Created     : 2025-02-18
# License     : GNU General Public License v3.0
# Description : Small RTSP/1.0 client used by CamScan to DESCRIBE, SETUP and
#               PLAY camera streams with Basic or Digest authentication.
# =============================================================================


import logging
import socket
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote, urlparse

from camscan.auth import (AuthInfo, basic_authorization, digest_authorization,
                          parse_auth_header)
from camscan.sdp import SessionDescription, parse_sdp

DEFAULT_RTSP_PORT = 554
USER_AGENT = "CamScan RTSP Scanner"
MAX_HEADER_SIZE = 64 * 1024
MAX_BODY_SIZE = 1024 * 1024

STATUS_OK = 200
STATUS_UNAUTHORIZED = 401
STATUS_FORBIDDEN = 403
STATUS_NOT_FOUND = 404


class RTSPError(Exception):
    """Transport or framing failure while talking to an RTSP server"""


@dataclass
class RTSPResponse:
    status_code: int
    reason: str
    header_list: List[Tuple[str, str]] = field(default_factory=list)
    body: str = ""

    @property
    def headers(self) -> Dict[str, str]:
        """First value of each header, keyed by lower-case name"""
        headers = {}
        for name, value in self.header_list:
            headers.setdefault(name.lower(), value)
        return headers

    def get_all(self, name: str) -> List[str]:
        return [v for n, v in self.header_list if n.lower() == name.lower()]


@dataclass
class _Target:
    host: str
    port: int
    uri: str
    username: Optional[str]
    password: Optional[str]


def parse_rtsp_url(url: str) -> _Target:
    """Split an rtsp:// URL into connection parameters and the request URI"""
    parsed = urlparse(url)
    if parsed.scheme.lower() not in ("rtsp", "rtsps") or not parsed.hostname:
        raise RTSPError(f"Invalid RTSP URL: {url}")
    try:
        port = parsed.port or DEFAULT_RTSP_PORT
    except ValueError as e:
        raise RTSPError(f"Invalid RTSP URL {url}: {e}") from e

    host = parsed.hostname
    netloc = f"[{host}]" if ':' in host else host
    uri = f"rtsp://{netloc}:{port}{parsed.path or '/'}"
    if parsed.query:
        uri += f"?{parsed.query}"

    username = unquote(parsed.username) if parsed.username is not None else None
    password = unquote(parsed.password) if parsed.password is not None else None
    if username is not None and password is None:
        password = ""
    return _Target(host, port, uri, username, password)


class RTSPClient:
    """One RTSP connection, owned by a single task for its whole lifetime"""

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout
        self.sock: Optional[socket.socket] = None
        self.address: Optional[Tuple[str, int]] = None
        self.cseq = 0
        self.session: Optional[str] = None
        self._buffer = b""
        self._auth: Optional[AuthInfo] = None
        self._credentials: Optional[Tuple[str, str]] = None
        self._nonce_count = 0
        self._deadline: Optional[float] = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _connect(self, host: str, port: int) -> None:
        if self.sock is not None and self.address == (host, port):
            return
        self.close()
        try:
            self.sock = socket.create_connection((host, port), timeout=self.timeout)
        except OSError as e:
            raise RTSPError(f"Connection to {host}:{port} failed: {e}") from e
        self.sock.settimeout(self.timeout)
        self.address = (host, port)

    def _recv(self) -> bytes:
        # The whole response must arrive within one timeout, however it is split
        remaining = self.timeout if self._deadline is None else self._deadline - time.monotonic()
        if remaining <= 0:
            raise RTSPError(f"No complete response within {self.timeout}s")
        try:
            self.sock.settimeout(remaining)
            chunk = self.sock.recv(4096)
        except OSError as e:
            raise RTSPError(f"Read failed: {e}") from e
        if not chunk:
            raise RTSPError("Connection closed by server")
        return chunk

    def _read_response(self) -> RTSPResponse:
        while True:
            # Skip interleaved RTP/RTCP frames ($ channel len16 payload)
            while self._buffer[:1] == b"$":
                while len(self._buffer) < 4:
                    self._buffer += self._recv()
                size = int.from_bytes(self._buffer[2:4], "big")
                while len(self._buffer) < 4 + size:
                    self._buffer += self._recv()
                self._buffer = self._buffer[4 + size:]
            if b"\r\n\r\n" in self._buffer and not self._buffer.startswith(b"$"):
                break
            if len(self._buffer) > MAX_HEADER_SIZE:
                raise RTSPError("Response header too large")
            self._buffer += self._recv()

        head, _, self._buffer = self._buffer.partition(b"\r\n\r\n")
        lines = head.decode('utf-8', errors='ignore').split("\r\n")
        status_line = lines[0].split(' ', 2)
        if len(status_line) < 2 or not status_line[0].startswith("RTSP/") or not status_line[1].isdigit():
            raise RTSPError(f"Malformed status line: {lines[0][:80]!r}")

        response = RTSPResponse(
            status_code=int(status_line[1]),
            reason=status_line[2] if len(status_line) > 2 else "",
        )
        for line in lines[1:]:
            name, sep, value = line.partition(':')
            if sep:
                response.header_list.append((name.strip(), value.strip()))

        length = response.headers.get("content-length", "0")
        length = int(length) if length.isdigit() else 0
        if length > MAX_BODY_SIZE:
            raise RTSPError(f"Response body too large: {length} bytes")
        while len(self._buffer) < length:
            self._buffer += self._recv()
        response.body = self._buffer[:length].decode('utf-8', errors='ignore')
        self._buffer = self._buffer[length:]
        return response

    def _authorization(self, method: str, uri: str) -> Optional[str]:
        if self._auth is None or self._credentials is None:
            return None
        username, password = self._credentials
        if self._auth.type == "digest":
            self._nonce_count += 1
            return digest_authorization(self._auth, username, password, method, uri,
                                        nonce_count=self._nonce_count)
        return basic_authorization(username, password)

    def _send(self, method: str, uri: str, headers: Optional[Dict[str, str]] = None) -> RTSPResponse:
        self.cseq += 1
        lines = [
            f"{method} {uri} RTSP/1.0",
            f"CSeq: {self.cseq}",
            f"User-Agent: {USER_AGENT}",
        ]
        authorization = self._authorization(method, uri)
        if authorization:
            lines.append(f"Authorization: {authorization}")
        if self.session:
            lines.append(f"Session: {self.session}")
        for name, value in (headers or {}).items():
            lines.append(f"{name}: {value}")
        request = "\r\n".join(lines) + "\r\n\r\n"
        logging.debug(f"RTSP request > {method} {uri} (CSeq {self.cseq})")

        self._deadline = time.monotonic() + self.timeout
        try:
            self.sock.settimeout(self.timeout)
            self.sock.sendall(request.encode())
        except OSError as e:
            raise RTSPError(f"Write failed: {e}") from e
        response = self._read_response()
        logging.debug(f"RTSP response < {response.status_code} {response.reason}")
        return response

    def _exchange(self, target: _Target, method: str, headers: Optional[Dict[str, str]]) -> RTSPResponse:
        reused = self.sock is not None and self.address == (target.host, target.port)
        self._connect(target.host, target.port)
        try:
            return self._send(method, target.uri, headers)
        except RTSPError:
            self.close()
            if not reused:
                raise
        # The server may have dropped an idle keep-alive connection
        self._connect(target.host, target.port)
        try:
            return self._send(method, target.uri, headers)
        except RTSPError:
            self.close()
            raise

    def request(self, method: str, url: str, headers: Optional[Dict[str, str]] = None) -> RTSPResponse:
        """Send a request, answering one authentication challenge if credentials are known"""
        target = parse_rtsp_url(url)
        # URLs without userinfo (SETUP/PLAY control URLs) keep the session credentials
        if target.username is not None:
            self._credentials = (target.username, target.password)

        response = self._exchange(target, method, headers)
        if response.status_code != STATUS_UNAUTHORIZED or self._credentials is None:
            return response

        challenges = [parse_auth_header(h) for h in response.get_all("WWW-Authenticate")]
        challenges = [c for c in challenges if c.type]
        if not challenges:
            return response
        challenges.sort(key=lambda c: c.type != "digest")
        previous = self._auth
        self._auth = challenges[0]
        self._nonce_count = 0
        if previous is not None and previous.type == self._auth.type and \
                previous.nonce == self._auth.nonce and self._auth.stale.lower() != "true":
            # Same challenge again: the credentials were rejected
            return response

        if response.headers.get("connection", "").lower() == "close":
            self.close()
        return self._exchange(target, method, headers)

    def describe(self, url: str) -> Tuple[Optional[SessionDescription], RTSPResponse]:
        """DESCRIBE url; the session description is only set on 200 OK"""
        response = self.request("DESCRIBE", url, {"Accept": "application/sdp"})
        if response.status_code != STATUS_OK:
            return None, response

        base_url = (response.headers.get("content-base")
                    or response.headers.get("content-location")
                    or parse_rtsp_url(url).uri)
        return parse_sdp(response.body, base_url), response

    def setup(self, media_url: str, interleaved: Tuple[int, int] = (0, 1)) -> RTSPResponse:
        transport = f"RTP/AVP/TCP;unicast;interleaved={interleaved[0]}-{interleaved[1]}"
        response = self.request("SETUP", media_url, {"Transport": transport})
        if response.status_code != STATUS_OK:
            raise RTSPError(f"SETUP failed: {response.status_code} {response.reason}")
        session = response.headers.get("session")
        if session:
            self.session = session.split(';')[0].strip()
        return response

    def play(self, url: str) -> RTSPResponse:
        response = self.request("PLAY", url, {"Range": "npt=0.000-"})
        if response.status_code != STATUS_OK:
            raise RTSPError(f"PLAY failed: {response.status_code} {response.reason}")
        return response

    def teardown(self, url: str) -> None:
        if self.sock is None or not self.session:
            return
        try:
            self.request("TEARDOWN", url)
        except RTSPError as e:
            logging.debug(f"TEARDOWN failed for {url}: {e}")
        finally:
            self.session = None

    def close(self) -> None:
        if self.sock is not None:
            try:
                self.sock.close()
            except OSError:
                pass
        self.sock = None
        self.address = None
        self._buffer = b""
