# =============================================================================
# Author      : awiones
# Created     : 2025-02-18
# License     : GNU General Public License v3.0
# Description : This code was developed by awiones. CamScan discovers RTSP
#               cameras on a network, then brute-forces their stream routes
#               and credentials and checks that the video can be played.
# =============================================================================


import argparse
import logging
import pathlib
import sys
from datetime import datetime
from typing import List, Optional

from colorama import Fore, Style, init

from camscan.attack import Attacker, NoStreamsError
from camscan.config import ScanConfig
from camscan.dictionaries import load_credentials, load_routes
from camscan.hints import print_hint
from camscan.scanner import NetworkScanner, expand_targets, parse_ports
from camscan.summary import print_streams, write_results

# Initialize colorama
init(autoreset=True)

RESULTS_DIR = pathlib.Path("results")


def configure_logging(debug: bool = False) -> pathlib.Path:
    """Write the session log to results/logs"""
    logs_dir = RESULTS_DIR / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / f'camscan_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log'
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        filename=log_file
    )
    logging.getLogger().setLevel(logging.DEBUG if debug else logging.INFO)
    return log_file


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description=f'''{Fore.CYAN}
█▀▀ ▄▀█ █▀▄▀█ █▀ █▀▀ ▄▀█ █▄░█
█▄▄ █▀█ █░▀░█ ▄█ █▄▄ █▀█ █░▀█
{Style.RESET_ALL}
CamScan - RTSP camera discovery and access auditing''',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--target', '-t',
        action='append',
        help='Target IP, hostname, CIDR network, last-octet range or file of targets (repeatable, comma separated)'
    )
    parser.add_argument(
        '--ports', '-p',
        action='append',
        help='Ports to scan, comma separated, ranges allowed (default: 554,5554,8554)'
    )
    parser.add_argument(
        '--custom-credentials', '-c',
        help='Path to a JSON credentials dictionary'
    )
    parser.add_argument(
        '--custom-routes', '-r',
        help='Path to a newline-delimited routes dictionary'
    )
    parser.add_argument(
        '--attack-interval', '-I',
        type=int,
        default=0,
        help='Milliseconds to wait between attack attempts (default: 0)'
    )
    parser.add_argument(
        '--timeout', '-T',
        type=int,
        default=2000,
        help='Milliseconds before a connection or request times out (default: 2000)'
    )
    parser.add_argument(
        '--output', '-o',
        help='Save results as JSON to this file'
    )
    parser.add_argument(
        '--debug', '-d',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    return parser.parse_args(argv)


def run(config: ScanConfig, credentials, routes, output: Optional[str] = None) -> int:
    """Scan, attack and report; returns the process exit code"""
    print(f"\n{Fore.YELLOW}[+] Beginning scan of {', '.join(config.targets)} "
          f"on ports {', '.join(config.ports)}{Style.RESET_ALL}")
    scanner = NetworkScanner(config, show_progress=True)
    streams = scanner.scan_hosts()
    print(f"{Fore.BLUE}[*] Found {len(streams)} RTSP streams{Style.RESET_ALL}")

    attacker = Attacker(config, credentials, routes, show_progress=True)
    try:
        streams = attacker.attack(streams)
    except NoStreamsError:
        print_streams([])
        return 1

    print_streams(streams)

    if output:
        path = write_results(output, streams)
        print(f"{Fore.GREEN}\nResults saved to: {path}{Style.RESET_ALL}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    if not args.target:
        print_hint('no_target')
        return 1
    if args.timeout <= 0 or args.attack_interval < 0:
        print_hint('invalid_timing')
        return 1

    try:
        config = ScanConfig.from_args(args)
    except ValueError as e:
        print_hint('general', str(e))
        return 1

    if not parse_ports(config.ports):
        print_hint('invalid_port', f"No valid port in {', '.join(config.ports)}")
        return 1
    if not expand_targets(config.targets):
        print_hint('invalid_range', f"No valid target in {', '.join(config.targets)}")
        return 1

    log_file = configure_logging(config.debug)
    logging.info("Starting new scan session")
    if config.verbose:
        print(f"{Fore.BLUE}[*] Verbose mode enabled, logging to {log_file}{Style.RESET_ALL}")

    try:
        print(f"{Fore.BLUE}[*] Loading credentials{Style.RESET_ALL}")
        credentials = load_credentials(config.credentials_path)
        print(f"{Fore.BLUE}[*] Loading routes{Style.RESET_ALL}")
        routes = load_routes(config.routes_path)
    except (OSError, ValueError) as e:
        logging.error(f"Unable to load dictionaries: {e}")
        print_hint('dictionary_error', str(e))
        return 1

    try:
        return run(config, credentials, routes, args.output)
    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}[!] Scan interrupted by user{Style.RESET_ALL}")
        return 1
    except Exception as e:
        logging.error(f"Scan failed: {e}")
        print(f"\n{Fore.RED}[!] Scan failed: {str(e)}{Style.RESET_ALL}")
        print_hint('general')
        return 1


if __name__ == "__main__":
    sys.exit(main())
