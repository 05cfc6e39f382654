import json
import logging
import pathlib
from typing import List, Union

from colorama import Fore, Style

from camscan.auth import AuthMethod
from camscan.stream import Stream, admin_panel_url, rtsp_url


def format_streams(streams: List[Stream]) -> str:
    """Format attacked streams for display"""
    if not streams:
        return (f"\n{Fore.RED}[!] No streams were found. Please make sure that your target "
                f"is on an accessible network.{Style.RESET_ALL}")

    output = []
    output.append(f"\n{Fore.CYAN}[*] RTSP Attack Results:{Style.RESET_ALL}")
    output.append(f"{Fore.BLUE}{'═' * 60}{Style.RESET_ALL}")

    success = 0
    for stream in streams:
        if stream.available:
            output.append(f"\n{Fore.GREEN}▶ Device RTSP URL: {rtsp_url(stream)}{Style.RESET_ALL}")
            output.append(f"  • Available: {Fore.GREEN}yes{Style.RESET_ALL}")
            success += 1
        else:
            output.append(f"\n{Fore.RED}▶ Admin panel URL: {admin_panel_url(stream)}{Style.RESET_ALL}")
            output.append(f"  • Available: {Fore.RED}no{Style.RESET_ALL}")

        if stream.device:
            output.append(f"  • Device model: {stream.device}")

        output.append(f"  • IP address: {stream.address}")
        output.append(f"  • RTSP port: {stream.port}")

        if stream.authentication_type in (AuthMethod.BASIC, AuthMethod.DIGEST):
            output.append(f"  • Auth type: {stream.authentication_type.label}")
        elif stream.authentication_type is AuthMethod.NONE:
            output.append("  • This camera does not require authentication")
        else:
            output.append("  • Auth type: unknown")

        if stream.credentials_found:
            output.append(f"  • Username: {stream.username}")
            output.append(f"  • Password: {stream.password}")
        else:
            output.append(f"  • Username: {Fore.YELLOW}not found{Style.RESET_ALL}")
            output.append(f"  • Password: {Fore.YELLOW}not found{Style.RESET_ALL}")

        if stream.route_found:
            output.append(f"  • RTSP routes:")
            for route in stream.routes:
                output.append(f"      /{route.lstrip('/')}")
        else:
            output.append(f"  • RTSP routes: {Fore.YELLOW}not found{Style.RESET_ALL}")

    output.append(f"\n{Fore.BLUE}{'─' * 60}{Style.RESET_ALL}")
    if success > 1:
        output.append(f"{Fore.GREEN}[✓] Successful attack: {success} devices were accessed{Style.RESET_ALL}")
    elif success == 1:
        output.append(f"{Fore.GREEN}[✓] Successful attack: one device was accessed{Style.RESET_ALL}")
    else:
        output.append(f"{Fore.YELLOW}[!] Streams were found but none were accessed. They are most likely "
                      f"configured with secure credentials and routes. You can try adding entries to "
                      f"the dictionary or generating your own in order to attempt a bruteforce attack "
                      f"on the cameras.{Style.RESET_ALL}")
    return '\n'.join(output)


def print_streams(streams: List[Stream]) -> None:
    print(format_streams(streams))


def write_results(path: Union[str, pathlib.Path], streams: List[Stream]) -> pathlib.Path:
    """Write streams as indented JSON"""
    output_path = pathlib.Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        json.dump([stream.to_dict() for stream in streams], f, indent=4)
    logging.info(f"Results written to {output_path}")
    return output_path
