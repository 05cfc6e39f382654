# =============================================================================
# Author      : awiones
# Created     : 2025-02-18
# License     : GNU General Public License v3.0
# Description : Minimal SDP parser used by CamScan to pick the elementary media
#               of a camera stream before SETUP/PLAY.
# =============================================================================


import base64
import binascii
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union
from urllib.parse import urljoin


@dataclass(frozen=True)
class H264:
    payload_type: int
    sps: bytes = b""
    pps: bytes = b""
    packetization_mode: int = 0


@dataclass(frozen=True)
class H265:
    payload_type: int
    vps: bytes = b""
    sps: bytes = b""
    pps: bytes = b""


@dataclass(frozen=True)
class MJPEG:
    payload_type: int = 26


@dataclass(frozen=True)
class MPEG4Audio:
    payload_type: int
    clock_rate: int = 0
    config: str = ""


@dataclass(frozen=True)
class Opus:
    payload_type: int
    channel_count: int = 2


@dataclass(frozen=True)
class G711:
    payload_type: int
    mulaw: bool = True


@dataclass(frozen=True)
class Unsupported:
    payload_type: int
    encoding: str = ""


MediaFormat = Union[H264, H265, MJPEG, MPEG4Audio, Opus, G711, Unsupported]

VIDEO_FORMATS = (H264, H265, MJPEG)


def _b64(value: str) -> bytes:
    try:
        return base64.b64decode(value + '=' * (-len(value) % 4))
    except (binascii.Error, ValueError):
        return b""


def parse_fmtp(fmtp: str) -> Dict[str, str]:
    """Parse 'key=value; key=value' fmtp parameters"""
    params = {}
    for item in fmtp.split(';'):
        key, sep, value = item.strip().partition('=')
        if sep:
            params[key.strip().lower()] = value.strip()
    return params


def parse_format(payload_type: int, rtpmap: str = "", fmtp: str = "") -> MediaFormat:
    """Map an RTP payload description to one of the supported formats"""
    encoding, _, rest = rtpmap.partition('/')
    encoding = encoding.strip().upper()
    clock, _, channels = rest.partition('/')
    params = parse_fmtp(fmtp)

    # Static payload types carry no rtpmap
    if not encoding:
        if payload_type == 0:
            return G711(payload_type, mulaw=True)
        if payload_type == 8:
            return G711(payload_type, mulaw=False)
        if payload_type == 26:
            return MJPEG(payload_type)
        return Unsupported(payload_type)

    if encoding == "H264":
        sps, pps = b"", b""
        sets = [s for s in params.get("sprop-parameter-sets", "").split(',') if s]
        if sets:
            sps = _b64(sets[0])
        if len(sets) > 1:
            pps = _b64(sets[1])
        mode = params.get("packetization-mode", "0")
        return H264(payload_type, sps=sps, pps=pps,
                    packetization_mode=int(mode) if mode.isdigit() else 0)
    if encoding in ("H265", "HEVC"):
        return H265(payload_type,
                    vps=_b64(params.get("sprop-vps", "")),
                    sps=_b64(params.get("sprop-sps", "")),
                    pps=_b64(params.get("sprop-pps", "")))
    if encoding == "JPEG":
        return MJPEG(payload_type)
    if encoding == "MPEG4-GENERIC":
        return MPEG4Audio(payload_type,
                          clock_rate=int(clock) if clock.isdigit() else 0,
                          config=params.get("config", ""))
    if encoding == "OPUS":
        return Opus(payload_type, channel_count=int(channels) if channels.isdigit() else 2)
    if encoding in ("PCMU", "PCMA"):
        return G711(payload_type, mulaw=encoding == "PCMU")
    return Unsupported(payload_type, encoding=encoding)


def describe_format(forma: MediaFormat) -> str:
    """Human-readable summary of a media format"""
    if isinstance(forma, H264):
        return f"H264 Video - SPS: {len(forma.sps)} bytes, PPS: {len(forma.pps)} bytes"
    if isinstance(forma, H265):
        return (f"H265 Video - VPS: {len(forma.vps)} bytes, SPS: {len(forma.sps)} bytes, "
                f"PPS: {len(forma.pps)} bytes")
    if isinstance(forma, MJPEG):
        return "MJPEG Video"
    if isinstance(forma, MPEG4Audio):
        return f"AAC Audio - Config: {forma.config or 'n/a'}"
    if isinstance(forma, Opus):
        return f"Opus Audio - {forma.channel_count} channels"
    if isinstance(forma, G711):
        return f"G711 Audio ({'mu-law' if forma.mulaw else 'a-law'})"
    return f"Unsupported format: {forma.encoding or forma.payload_type}"


@dataclass
class Media:
    kind: str
    control: str = ""
    formats: List[MediaFormat] = field(default_factory=list)

    def url(self, base_url: str) -> str:
        """Absolute control URL of this media"""
        if not self.control or self.control == "*":
            return base_url
        if self.control.startswith("rtsp://"):
            return self.control
        if not base_url.endswith('/'):
            base_url += '/'
        return urljoin(base_url, self.control)


@dataclass
class SessionDescription:
    base_url: str
    title: str = ""
    medias: List[Media] = field(default_factory=list)

    def find_format(self, *types) -> Optional[Tuple[Media, MediaFormat]]:
        """Return the first media carrying one of the given format types"""
        for media in self.medias:
            for forma in media.formats:
                if isinstance(forma, types):
                    return media, forma
        return None

    def describe_tracks(self) -> List[str]:
        tracks = []
        for i, media in enumerate(self.medias):
            for forma in media.formats:
                tracks.append(f"Media #{i + 1}: {describe_format(forma)}")
        return tracks


def parse_sdp(text: str, base_url: str) -> SessionDescription:
    """Parse an SDP body; session-level a=control overrides base_url"""
    session = SessionDescription(base_url=base_url)
    current: Optional[Media] = None
    rtpmaps: Dict[int, str] = {}
    fmtps: Dict[int, str] = {}
    payload_types: List[int] = []

    def finish():
        if current is None:
            return
        current.formats = [
            parse_format(pt, rtpmaps.get(pt, ""), fmtps.get(pt, ""))
            for pt in payload_types
        ]
        session.medias.append(current)

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if len(line) < 2 or line[1] != '=':
            continue
        kind, value = line[0], line[2:]

        if kind == 's' and current is None:
            session.title = value
        elif kind == 'm':
            finish()
            fields = value.split()
            current = Media(kind=fields[0] if fields else "")
            rtpmaps, fmtps = {}, {}
            payload_types = [int(pt) for pt in fields[3:] if pt.isdigit()]
        elif kind == 'a':
            name, _, attr = value.partition(':')
            if name == 'control':
                if current is None:
                    if attr and attr != '*':
                        session.base_url = attr if attr.startswith("rtsp://") else urljoin(
                            base_url if base_url.endswith('/') else base_url + '/', attr)
                else:
                    current.control = attr
            elif name in ('rtpmap', 'fmtp') and current is not None:
                pt, _, desc = attr.partition(' ')
                if pt.isdigit():
                    (rtpmaps if name == 'rtpmap' else fmtps)[int(pt)] = desc.strip()

    finish()
    return session
