from colorama import Fore, Style

def get_hint(error_type: str) -> str:
    """Return formatted usage hint based on error type"""
    hints = {
        'no_target': f"""
{Fore.YELLOW}A target is required. Use:
{Fore.CYAN}python CamScan.py --target <IP/HOSTNAME/NETWORK/FILE> {Fore.GREEN}[options]
{Fore.YELLOW}Examples:
{Fore.CYAN}python CamScan.py --target 192.168.1.100
python CamScan.py --target 192.168.1.0/24
python CamScan.py --target 192.168.1.10-50
python CamScan.py --target targets.txt{Style.RESET_ALL}
        """,

        'invalid_port': f"""
{Fore.YELLOW}Invalid port specified. Ports must be between 1-65535. Use:
{Fore.CYAN}python CamScan.py --target <IP> --ports <PORT,PORT,START-END>
{Fore.YELLOW}Example:
{Fore.CYAN}python CamScan.py --target 192.168.1.100 --ports 554,8554,8000-8010{Style.RESET_ALL}
        """,

        'invalid_timing': f"""
{Fore.YELLOW}Timeout must be positive and the attack interval cannot be negative. Use:
{Fore.CYAN}python CamScan.py --target <IP> --timeout <MS> --attack-interval <MS>
{Fore.YELLOW}Example:
{Fore.CYAN}python CamScan.py --target 192.168.1.100 --timeout 2000 --attack-interval 100{Style.RESET_ALL}
        """,

        'dictionary_error': f"""
{Fore.YELLOW}Dictionaries could not be loaded. Check:
{Fore.CYAN}1. The credentials file is JSON: {{"usernames": [...], "passwords": [...]}}
2. The routes file has one route per line
3. Both files exist and are readable{Style.RESET_ALL}
        """,

        'invalid_range': f"""
{Fore.YELLOW}Invalid IP range format. Use CIDR notation or a last-octet range:
{Fore.CYAN}python CamScan.py --target <NETWORK>/<MASK>
{Fore.YELLOW}Examples:
{Fore.CYAN}python CamScan.py --target 192.168.1.0/24
python CamScan.py --target 192.168.1.10-20{Style.RESET_ALL}
        """,

        'general': f"""
{Fore.YELLOW}For complete usage information, use:
{Fore.CYAN}python CamScan.py --help

{Fore.YELLOW}Common usage patterns:
{Fore.CYAN}1. Basic scan:        python CamScan.py --target <IP>
2. Custom ports:      python CamScan.py --target <IP> --ports 554,8554
3. Network range:     python CamScan.py --target 192.168.1.0/24
4. Own dictionaries:  python CamScan.py --target <IP> -c creds.json -r routes.txt
5. Slow and quiet:    python CamScan.py --target <IP> --attack-interval 500{Style.RESET_ALL}
        """,
    }

    return hints.get(error_type, hints['general'])

def print_hint(error_type: str, additional_info: str = None) -> None:
    """Print a formatted usage hint"""
    print(f"\n{Fore.RED}[!] Usage Error: {Style.RESET_ALL}")
    if additional_info:
        print(f"{Fore.RED}{additional_info}{Style.RESET_ALL}")
    print(get_hint(error_type))
