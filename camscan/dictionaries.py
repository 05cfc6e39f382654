# =============================================================================
# Author      : awiones
# Created     : 2025-02-18
# License     : GNU General Public License v3.0
# Description : Loads the credential and route dictionaries used by the CamScan
#               brute-force phases.
# =============================================================================


import json
import logging
import pathlib
from dataclasses import dataclass
from typing import Tuple, Union


@dataclass(frozen=True)
class Credentials:
    usernames: Tuple[str, ...] = ()
    passwords: Tuple[str, ...] = ()

    def __len__(self):
        return len(self.usernames) * len(self.passwords)


def load_credentials(path: Union[str, pathlib.Path]) -> Credentials:
    """Load a {"usernames": [...], "passwords": [...]} JSON dictionary"""
    path = pathlib.Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid credentials dictionary {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Invalid credentials dictionary {path}: expected an object")

    lists = {}
    for key in ("usernames", "passwords"):
        values = data.get(key, [])
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise ValueError(f"Invalid credentials dictionary {path}: '{key}' must be a list of strings")
        lists[key] = tuple(values)

    credentials = Credentials(lists["usernames"], lists["passwords"])
    logging.info(f"Loaded {len(credentials.usernames)} usernames and "
                 f"{len(credentials.passwords)} passwords from {path}")
    return credentials


def load_routes(path: Union[str, pathlib.Path]) -> Tuple[str, ...]:
    """Load a newline-delimited route dictionary"""
    path = pathlib.Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        routes = tuple(line.strip() for line in f if line.strip())
    logging.info(f"Loaded {len(routes)} routes from {path}")
    return routes
