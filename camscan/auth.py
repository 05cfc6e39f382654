# =============================================================================
# Author      : awiones
# Created     : 2025-02-18
# License     : GNU General Public License v3.0
# Description : RTSP authentication helpers for CamScan. Parses WWW-Authenticate
#               challenges and builds Basic/Digest Authorization headers.
# =============================================================================


import base64
import hashlib
import os
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


class AuthMethod(IntEnum):
    """Authentication method required by a stream"""
    UNKNOWN = -1  # detection failed
    NONE = 0
    BASIC = 1
    DIGEST = 2

    @property
    def label(self) -> str:
        if self is AuthMethod.UNKNOWN:
            return "unknown"
        return self.name.lower()


@dataclass
class AuthInfo:
    type: str = ""
    realm: str = ""
    nonce: str = ""
    opaque: str = ""
    stale: str = ""
    algorithm: str = ""
    qop: str = ""
    header: str = ""

    @property
    def method(self) -> AuthMethod:
        if self.type == "digest":
            return AuthMethod.DIGEST
        if self.type == "basic":
            return AuthMethod.BASIC
        return AuthMethod.NONE


DIGEST_FIELDS = ("realm", "nonce", "opaque", "stale", "algorithm", "qop")


def _split_params(params: str):
    """Split a challenge parameter list on commas outside quotes"""
    parts = []
    current = []
    quoted = False
    for char in params:
        if char == '"':
            quoted = not quoted
        if char == ',' and not quoted:
            parts.append(''.join(current))
            current = []
            continue
        current.append(char)
    parts.append(''.join(current))
    return parts


def parse_auth_header(www_authenticate: str) -> AuthInfo:
    """Parse a WWW-Authenticate challenge into an AuthInfo"""
    info = AuthInfo(header=www_authenticate)
    value = www_authenticate.strip()
    lowered = value.lower()

    if lowered.startswith("digest"):
        info.type = "digest"
        parts = value.split(None, 1)
        if len(parts) > 1:
            for pair in _split_params(parts[1]):
                key, sep, raw = pair.strip().partition('=')
                if not sep:
                    continue
                key = key.strip().lower()
                if key in DIGEST_FIELDS:
                    setattr(info, key, raw.strip().strip('"'))
    elif lowered.startswith("basic"):
        info.type = "basic"
        parts = value.split(None, 1)
        if len(parts) > 1:
            realm = parts[1].strip()
            # Basic realm="x" and the bare Basic "x" form are both seen in the wild
            if realm.lower().startswith("realm="):
                realm = realm[len("realm="):]
            info.realm = realm.strip().strip('"')

    return info


def basic_authorization(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return f"Basic {token}"


def _hash(algorithm: str, data: str) -> str:
    name = algorithm.lower().replace("-sess", "").replace("-", "")
    if name not in ("md5", "sha256"):
        name = "md5"
    return hashlib.new(name, data.encode()).hexdigest()


def digest_authorization(info: AuthInfo, username: str, password: str,
                         method: str, uri: str, nonce_count: int = 1,
                         cnonce: Optional[str] = None) -> str:
    """Compute a Digest Authorization header (RFC 2617 / RFC 7616)"""
    algorithm = info.algorithm or "MD5"
    ha1 = _hash(algorithm, f"{username}:{info.realm}:{password}")
    qop = ""
    if info.qop:
        qop_options = [q.strip() for q in info.qop.split(',')]
        if "auth" in qop_options:
            qop = "auth"

    if algorithm.lower().endswith("-sess") or qop:
        cnonce = cnonce or os.urandom(8).hex()
    if algorithm.lower().endswith("-sess"):
        ha1 = _hash(algorithm, f"{ha1}:{info.nonce}:{cnonce}")

    ha2 = _hash(algorithm, f"{method}:{uri}")
    nc = f"{nonce_count:08x}"

    if qop:
        response = _hash(algorithm, f"{ha1}:{info.nonce}:{nc}:{cnonce}:{qop}:{ha2}")
    else:
        response = _hash(algorithm, f"{ha1}:{info.nonce}:{ha2}")

    fields = [
        f'username="{username}"',
        f'realm="{info.realm}"',
        f'nonce="{info.nonce}"',
        f'uri="{uri}"',
        f'response="{response}"',
    ]
    if info.algorithm:
        fields.append(f'algorithm={info.algorithm}')
    if info.opaque:
        fields.append(f'opaque="{info.opaque}"')
    if qop:
        fields.extend([f'qop={qop}', f'nc={nc}', f'cnonce="{cnonce}"'])
    return "Digest " + ", ".join(fields)
