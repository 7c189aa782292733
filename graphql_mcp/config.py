"""Runtime configuration read from the environment."""

import json
import logging
import os
from typing import FrozenSet, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://countries.trevorblades.com/graphql"
DEFAULT_CACHE_TTL = 3600  # 1 hour schema cache TTL


def parse_whitelist(raw: Optional[str], label: str = "whitelist") -> Optional[FrozenSet[str]]:
    """
    Parse a whitelist environment value.

    Accepts a JSON array of names (``["a", "b"]``) or a comma-separated list (``a, b``).
    A value that cannot be parsed disables the whitelist instead of failing startup.

    Args:
        raw: Raw environment value
        label: Name used in log messages

    Returns:
        Frozen set of allowed field names, or None when every field is allowed
    """
    if not raw:
        return None

    try:
        if raw.startswith("["):
            names = json.loads(raw)
            if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
                raise ValueError("expected a JSON array of strings")
        else:
            names = [n.strip() for n in raw.split(",")]
        allowed = frozenset(n for n in names if n)
    except ValueError as e:
        logger.error(f"Failed to parse {label}: {e}; all fields will be allowed")
        return None

    logger.info(f"Loaded {label} with {len(allowed)} entries: {sorted(allowed)}")
    return allowed


class Settings(BaseModel):
    """Settings consumed by the server and the schema-to-tool adapter."""

    endpoint: str = DEFAULT_ENDPOINT
    api_key: str = ""
    debug: bool = False
    cache_ttl: float = Field(default=DEFAULT_CACHE_TTL, gt=0)
    whitelisted_queries: Optional[FrozenSet[str]] = None
    whitelisted_mutations: Optional[FrozenSet[str]] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        """
        Build settings from environment variables, loading ``.env`` first when available.

        Args:
            load_env_file: Whether to read a ``.env`` file before looking at the environment

        Returns:
            Settings instance
        """
        if load_env_file:
            from dotenv import load_dotenv
            load_dotenv()

        debug = os.getenv("DEBUG", "").lower() == "true"
        return cls(
            endpoint=os.getenv("GRAPHQL_API_ENDPOINT") or DEFAULT_ENDPOINT,
            api_key=os.getenv("GRAPHQL_API_KEY", ""),
            debug=debug,
            cache_ttl=os.getenv("SCHEMA_CACHE_TTL") or DEFAULT_CACHE_TTL,
            whitelisted_queries=parse_whitelist(os.getenv("WHITELISTED_QUERIES"), "query whitelist"),
            whitelisted_mutations=parse_whitelist(os.getenv("WHITELISTED_MUTATIONS"), "mutation whitelist"),
            log_level=os.getenv("LOG_LEVEL") or ("DEBUG" if debug else "INFO"),
        )
