import base64
import socket
import socketserver
import threading
from urllib.parse import urlparse

import pytest

from camscan.rtsp_client import RTSPResponse

SDP_H264 = (
    "v=0\r\n"
    "o=- 0 0 IN IP4 127.0.0.1\r\n"
    "s=Fake Camera\r\n"
    "t=0 0\r\n"
    "m=video 0 RTP/AVP 96\r\n"
    "a=rtpmap:96 H264/90000\r\n"
    "a=fmtp:96 packetization-mode=1;sprop-parameter-sets=Z0IAKeKQFAe2AtwEBAaQeJEV,aM48gA==\r\n"
    "a=control:trackID=1\r\n"
)

REASONS = {200: "OK", 401: "Unauthorized", 403: "Forbidden", 404: "Not Found", 454: "Session Not Found"}


class _Handler(socketserver.BaseRequestHandler):
    def handle(self):
        buffer = b""
        while True:
            try:
                chunk = self.request.recv(4096)
            except OSError:
                return
            if not chunk:
                return
            buffer += chunk
            while b"\r\n\r\n" in buffer:
                head, _, buffer = buffer.partition(b"\r\n\r\n")
                self.answer(head.decode())

    def answer(self, head):
        lines = head.split("\r\n")
        method, uri, _ = lines[0].split(" ", 2)
        headers = {}
        for line in lines[1:]:
            name, _, value = line.partition(":")
            headers[name.strip().lower()] = value.strip()
        parsed = urlparse(uri)
        path = parsed.path.lstrip("/")
        if parsed.query:
            path += "?" + parsed.query

        camera = self.server.camera
        with camera.lock:
            camera.requests.append((method, path, headers.get("authorization")))
        status, extra, body = camera.respond(method, path, headers)

        response = [f"RTSP/1.0 {status} {REASONS.get(status, 'Error')}",
                    f"CSeq: {headers.get('cseq', '0')}"]
        for name, value in extra.items():
            response.append(f"{name}: {value}")
        payload = body.encode()
        response.append(f"Content-Length: {len(payload)}")
        self.request.sendall(("\r\n".join(response) + "\r\n\r\n").encode() + payload)


class FakeCamera:
    """Threaded RTSP server on 127.0.0.1 driven by a respond(method, path, headers) callable"""

    def __init__(self, respond):
        self.respond_impl = respond
        self.requests = []
        self.lock = threading.Lock()
        self.server = socketserver.ThreadingTCPServer(("127.0.0.1", 0), _Handler)
        self.server.daemon_threads = True
        self.server.camera = self
        self.port = self.server.server_address[1]
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)

    def respond(self, method, path, headers):
        return self.respond_impl(self, method, path, headers)

    def start(self):
        self.thread.start()
        return self

    def stop(self):
        self.server.shutdown()
        self.server.server_close()

    def describes(self):
        with self.lock:
            return [r for r in self.requests if r[0] == "DESCRIBE"]


def basic_token(username, password):
    return "Basic " + base64.b64encode(f"{username}:{password}".encode()).decode()


def media_response(camera, method, path):
    """Answer a fully authorised request against the stream at path"""
    if method == "DESCRIBE":
        base = f"rtsp://127.0.0.1:{camera.port}/" + (f"{path}/" if path else "")
        return 200, {"Content-Base": base,
                     "Content-Type": "application/sdp"}, SDP_H264
    if method == "SETUP":
        return 200, {"Session": "12345678;timeout=60",
                     "Transport": "RTP/AVP/TCP;unicast;interleaved=0-1"}, ""
    return 200, {"Session": "12345678"}, ""


@pytest.fixture
def fake_camera():
    cameras = []

    def factory(respond):
        camera = FakeCamera(respond).start()
        cameras.append(camera)
        return camera

    yield factory
    for camera in cameras:
        camera.stop()


@pytest.fixture
def closed_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


class FakeClient:
    """Stand-in for RTSPClient answering DESCRIBE from a status(url) callable"""

    def __init__(self, status, headers=None, error=None):
        self.status = status
        self.headers = headers or []
        self.error = error
        self.urls = []
        self.closed = False

    def __call__(self, timeout=None):
        return self

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True

    def describe(self, url):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        code = self.status(url)
        return None, RTSPResponse(code, REASONS.get(code, ""), list(self.headers))
