# =============================================================================
# Author      : awiones
# Created     : 2025-02-18
# License     : GNU General Public License v3.0
# Description : Immutable scan configuration shared by every CamScan component.
# =============================================================================


import pathlib
from dataclasses import dataclass, field
from typing import FrozenSet, Tuple

DICTIONARY_DIR = pathlib.Path(__file__).resolve().parent / "data"
DEFAULT_CREDENTIALS_PATH = DICTIONARY_DIR / "credentials.json"
DEFAULT_ROUTES_PATH = DICTIONARY_DIR / "routes"

DEFAULT_PORTS = ("554", "5554", "8554")
DEFAULT_TIMEOUT = 2.0
DEFAULT_ATTACK_INTERVAL = 0.0
DEFAULT_MAX_WORKERS = 100

# A route exists when DESCRIBE answers OK, or asks for (other) credentials.
ROUTE_OK_CODES = frozenset({200, 401, 403})
# 404 after authentication means the server accepted the credentials first.
CREDENTIAL_OK_CODES = frozenset({200, 404})


def _split(values) -> Tuple[str, ...]:
    """Flatten 'a,b' style CLI values into a tuple of stripped entries"""
    if isinstance(values, (str, int)):
        values = [values]
    items = []
    for value in values or ():
        items.extend(v.strip() for v in str(value).split(','))
    return tuple(v for v in items if v)


@dataclass(frozen=True)
class ScanConfig:
    targets: Tuple[str, ...]
    ports: Tuple[str, ...] = DEFAULT_PORTS
    debug: bool = False
    verbose: bool = False
    credentials_path: pathlib.Path = DEFAULT_CREDENTIALS_PATH
    routes_path: pathlib.Path = DEFAULT_ROUTES_PATH
    attack_interval: float = DEFAULT_ATTACK_INTERVAL
    timeout: float = DEFAULT_TIMEOUT
    route_ok_codes: FrozenSet[int] = field(default=ROUTE_OK_CODES)
    credential_ok_codes: FrozenSet[int] = field(default=CREDENTIAL_OK_CODES)
    max_workers: int = DEFAULT_MAX_WORKERS

    def __post_init__(self):
        # Normalise while still constructing; the instance is frozen afterwards
        object.__setattr__(self, 'targets', _split(self.targets))
        object.__setattr__(self, 'ports', _split(self.ports))
        object.__setattr__(self, 'credentials_path', pathlib.Path(self.credentials_path))
        object.__setattr__(self, 'routes_path', pathlib.Path(self.routes_path))
        object.__setattr__(self, 'route_ok_codes', frozenset(int(c) for c in self.route_ok_codes))
        object.__setattr__(self, 'credential_ok_codes', frozenset(int(c) for c in self.credential_ok_codes))

        if not self.targets:
            raise ValueError("No target specified")
        if not self.ports:
            raise ValueError("No port specified")
        if self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout}")
        if self.attack_interval < 0:
            raise ValueError(f"Attack interval cannot be negative, got {self.attack_interval}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        if not self.route_ok_codes or not self.credential_ok_codes:
            raise ValueError("Status classification tables cannot be empty")

    @classmethod
    def from_args(cls, args) -> "ScanConfig":
        """Build a config from the CamScan.py argparse namespace"""
        return cls(
            targets=args.target,
            ports=args.ports or DEFAULT_PORTS,
            debug=args.debug,
            verbose=args.verbose,
            credentials_path=args.custom_credentials or DEFAULT_CREDENTIALS_PATH,
            routes_path=args.custom_routes or DEFAULT_ROUTES_PATH,
            attack_interval=args.attack_interval / 1000.0,
            timeout=args.timeout / 1000.0,
        )
