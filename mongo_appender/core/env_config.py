from dotenv import load_dotenv
import os
from typing import Dict, Iterable, Optional


def read_env(keys: Iterable[str], prefix: str = "") -> Dict[str, str]:
    """Read the given keys from the environment, after loading .env. Unset keys are left out."""
    load_dotenv()

    config = {key: os.getenv(f"{prefix}{key}") for key in keys}
    return {k: v for k, v in config.items() if v}


class EnvConnectionStrings:
    """
    Named connection strings kept in the environment or a .env file,
    e.g. CONNECTIONSTRINGS__MONGOLOGS=mongodb://localhost/logs
    """

    def __init__(self, prefix: str = "CONNECTIONSTRINGS__"):
        self.prefix = prefix

    def lookup(self, name: str) -> Optional[str]:
        return read_env([name.upper()], prefix=self.prefix).get(name.upper())
