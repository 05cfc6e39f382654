# =============================================================================
# Author      : awiones
# Created     : 2025-02-18
# License     : GNU General Public License v3.0
# Description : Concurrent network scanner for CamScan. Probes every
#               host x port pair and keeps the ones that speak RTSP.
# =============================================================================


import ipaddress
import logging
import os
import re
import concurrent.futures
from typing import List, Tuple

import validators
from tqdm import tqdm

from camscan.config import ScanConfig
from camscan.prober import PortStatus, probe_port
from camscan.stream import Stream

OCTET_RANGE = re.compile(r'^(\d{1,3}\.\d{1,3}\.\d{1,3}\.)(\d{1,3})-(\d{1,3})$')


def _unique(items):
    seen = set()
    return [i for i in items if not (i in seen or seen.add(i))]


def is_valid_host(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    return bool(validators.hostname(host, may_have_port=False, maybe_simple=True))


def load_targets(targets) -> List[str]:
    """Read targets from a file when the single target names one"""
    targets = list(targets)
    if len(targets) == 1 and os.path.isfile(targets[0]):
        with open(targets[0], 'r') as f:
            targets = [line.strip() for line in f
                       if line.strip() and not line.strip().startswith('#')]
        logging.info(f"Loaded {len(targets)} targets from file")
    return targets


def expand_targets(targets) -> List[str]:
    """Expand CIDR networks and last-octet ranges into individual hosts"""
    hosts = []
    for target in load_targets(targets):
        if '/' in target:
            try:
                network = ipaddress.ip_network(target, strict=False)
            except ValueError:
                logging.warning(f"Skipping invalid network: {target}")
                continue
            network_hosts = [str(ip) for ip in network.hosts()]
            hosts.extend(network_hosts or [str(network.network_address)])
            continue

        match = OCTET_RANGE.match(target)
        if match:
            prefix, start, end = match.group(1), int(match.group(2)), int(match.group(3))
            if start > end or end > 255:
                logging.warning(f"Skipping invalid range: {target}")
                continue
            hosts.extend(f"{prefix}{i}" for i in range(start, end + 1))
            continue

        if not is_valid_host(target):
            logging.warning(f"Skipping invalid target: {target}")
            continue
        hosts.append(target)
    return _unique(hosts)


def parse_ports(ports) -> List[int]:
    """Parse port strings; malformed entries are skipped"""
    parsed = []
    for port in ports:
        port = str(port).strip()
        try:
            if '-' in port:
                start, end = map(int, port.split('-', 1))
                values = list(range(start, end + 1))
            else:
                values = [int(port)]
        except ValueError:
            logging.warning(f"Wrong port value: {port!r}")
            continue
        valid = [p for p in values if 0 < p < 65536]
        if not valid:
            logging.warning(f"Port out of range: {port!r}")
        parsed.extend(valid)
    return _unique(parsed)


class NetworkScanner:
    def __init__(self, config: ScanConfig, show_progress: bool = False):
        self.config = config
        self.show_progress = show_progress

    def _pairs(self) -> List[Tuple[str, int]]:
        hosts = expand_targets(self.config.targets)
        ports = parse_ports(self.config.ports)
        return [(host, port) for host in hosts for port in ports]

    def scan_hosts(self) -> List[Stream]:
        """Probe all host x port pairs and return one Stream per RTSP port"""
        pairs = self._pairs()
        if not pairs:
            logging.warning("Nothing to scan: no valid target/port pair")
            return []

        logging.info(f"Scanning {len(pairs)} host/port pairs")
        results: List[PortStatus] = []
        workers = min(self.config.max_workers, len(pairs))
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_pair = {
                executor.submit(probe_port, host, port, self.config.timeout): (host, port)
                for host, port in pairs
            }
            with tqdm(total=len(pairs), desc="Scanning RTSP ports", unit="port",
                      disable=not self.show_progress) as pbar:
                for future in concurrent.futures.as_completed(future_to_pair):
                    host, port = future_to_pair[future]
                    try:
                        results.append(future.result())
                    except Exception as e:
                        logging.debug(f"Error probing {host}:{port}: {e}")
                    pbar.update(1)

        order = {pair: i for i, pair in enumerate(pairs)}
        results.sort(key=lambda status: order[(status.host, status.port)])
        streams = [
            Stream(address=status.host, port=status.port, banner=status.banner)
            for status in results if status.is_rtsp
        ]
        logging.info(f"Found {len(streams)} RTSP streams")
        return streams
