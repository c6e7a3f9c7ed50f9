"""
Parsers for .env files referenced by services.
"""
import os
from typing import Dict, List

from dotenv import dotenv_values


class EnvParser:
    """
    Reads ``env_file`` entries into plain string dictionaries.
    """
    def __init__(self, base_dir: str = "."):
        """
        :param base_dir: Directory relative ``env_file`` paths resolve against.
        """
        self.base_dir = base_dir

    def parse(self, env_path: str) -> Dict[str, str]:
        """
        Parses one .env file. Keys without a value map to an empty string.

        :raises FileNotFoundError: If the file does not exist.
        """
        path = os.path.join(self.base_dir, env_path)
        if not os.path.isfile(path):
            raise FileNotFoundError(f"env file not found: {path}")
        return {key: value or "" for key, value in dotenv_values(path, interpolate=False).items()}

    def parse_all(self, env_files: List[str]) -> Dict[str, str]:
        """
        Merges several files; later files override earlier ones.
        """
        merged: Dict[str, str] = {}
        for env_file in env_files:
            merged.update(self.parse(env_file))
        return merged
