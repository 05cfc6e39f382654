# =============================================================================
# Author      : awiones
# Created     : 2025-02-18
# License     : GNU General Public License v3.0
# Description : Stream record shared by the CamScan scanner and attack phases.
# =============================================================================


from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

from camscan.auth import AuthMethod
from camscan.sdp import SessionDescription


@dataclass
class Stream:
    address: str
    port: int
    banner: str = ""
    device: str = ""

    routes: List[str] = field(default_factory=list)
    route_found: bool = False

    authentication_type: AuthMethod = AuthMethod.NONE

    credentials_found: bool = False
    username: str = ""
    password: str = ""

    media: Optional[SessionDescription] = None
    available: bool = False

    @property
    def key(self) -> Tuple[str, int]:
        return self.address, self.port

    def route(self) -> str:
        """Effective route used to build URLs"""
        if not self.routes:
            return ""
        route = self.routes[0]
        if route == "/":
            return ""
        return route.lstrip('/')

    def to_dict(self) -> Dict:
        return {
            "address": self.address,
            "port": self.port,
            "device": self.device,
            "route_found": self.route_found,
            "routes": list(self.routes),
            "credentials_found": self.credentials_found,
            "username": self.username,
            "password": self.password,
            "authentication_type": self.authentication_type.label,
            "available": self.available,
            "banner": self.banner,
        }


def build_url(stream: Stream, route: Optional[str] = None,
              credentials: Optional[Tuple[str, str]] = None) -> str:
    """Build an rtsp:// URL for a stream, optionally for another route or credentials"""
    if route is None:
        route = stream.route()
    route = route.lstrip('/')
    userinfo = ""
    if credentials is not None:
        username, password = credentials
        userinfo = f"{quote(username, safe='')}:{quote(password, safe='')}@"
    host = f"[{stream.address}]" if ':' in stream.address else stream.address
    return f"rtsp://{userinfo}{host}:{stream.port}/{route}"


def known_credentials(stream: Stream) -> Optional[Tuple[str, str]]:
    if not stream.credentials_found:
        return None
    return stream.username, stream.password


def rtsp_url(stream: Stream) -> str:
    """Display URL; empty accepted credentials carry no userinfo"""
    credentials = known_credentials(stream)
    if credentials == ("", ""):
        credentials = None
    return build_url(stream, credentials=credentials)


def admin_panel_url(stream: Stream) -> str:
    return f"http://{stream.address}/"


def replace_stream(streams: List[Stream], updated: Stream) -> List[Stream]:
    """Replace the entry with the same address:port as updated"""
    return [updated if s.key == updated.key else s for s in streams]
