"""
Network and chain configuration for the Secret Network SDK.

Configuration holds only public connection settings. Key material is
never stored here; it is handed to a signer for the duration of a single
transaction.
"""
import os
import json
import logging
import importlib.resources
import urllib.parse
from dataclasses import dataclass, replace
from typing import Dict, Any, Optional

from .address import AddressScheme

logger = logging.getLogger(__name__)

DEFAULT_NETWORK = "mainnet"
DEFAULT_TIMEOUT = 30


def validate_lcd_url(url: str, name: str = "base_url") -> None:
    """
    Validate that a gateway URL is secure.

    Args:
        url: URL to validate
        name: Name used in the error message

    Raises:
        ValueError: If the URL is malformed or uses plain HTTP for a remote host
    """
    parsed = urllib.parse.urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        raise ValueError(f"Invalid {name} '{url}'")

    # Loopback hosts may use plain HTTP
    is_local = parsed.hostname in ("localhost", "127.0.0.1", "::1")
    if parsed.scheme != "https" and not is_local:
        if os.environ.get("SCRT_INSECURE_LCD") != "1":
            raise ValueError(
                f"{name} must use https:// for security (got: {parsed.scheme}://). "
                "Set SCRT_INSECURE_LCD=1 to allow HTTP for development."
            )


class NetworkConfig:
    """Known Secret Network deployments, loaded from the packaged networks.json."""

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load the network table.

        Returns:
            Mapping of network name to its settings
        """
        if cls._networks_cache is not None:
            return cls._networks_cache

        resource = importlib.resources.files("scrt_sdk").joinpath("networks.json")
        with resource.open("r", encoding="utf-8") as f:
            cls._networks_cache = json.load(f)
        return cls._networks_cache

    @classmethod
    def get_network(cls, network: str) -> Dict[str, Any]:
        """
        Get the settings of one network.

        Raises:
            ValueError: If the network is unknown
        """
        networks = cls.load_networks()
        if network not in networks:
            available = ", ".join(sorted(networks))
            raise ValueError(f"Unknown network '{network}'. Available networks: {available}")
        return networks[network]

    @classmethod
    def get_lcd_url(cls, network: str, override: Optional[str] = None) -> str:
        """
        Resolve the LCD base URL of a network.

        Precedence: explicit override, then <NETWORK>_LCD_URL, then the table.
        """
        if override:
            return override
        env_name = f"{network.upper().replace('-', '_')}_LCD_URL"
        env_url = os.environ.get(env_name)
        if env_url:
            logger.debug("Using %s from environment", env_name)
            return env_url
        return cls.get_network(network)["lcd"]

    @classmethod
    def get_chain_id(cls, network: str) -> str:
        return cls.get_network(network)["chainId"]


@dataclass(frozen=True)
class ChainConfig:
    """
    Immutable connection settings for one chain.

    Attributes:
        base_url: LCD REST gateway URL
        chain_id: Chain identifier included in every SignDoc
        bech32_prefix: Human-readable address prefix
        fee_denom: Default fee denomination
        address_scheme: How addresses are derived from public keys
        timeout: HTTP timeout in seconds
        retry_count: urllib3 retries for idempotent GET requests
        api_key: Optional bearer token for the gateway
    """
    base_url: str
    chain_id: str
    bech32_prefix: str = "secret"
    fee_denom: str = "uscrt"
    address_scheme: AddressScheme = AddressScheme.BECH32
    timeout: int = DEFAULT_TIMEOUT
    retry_count: int = 0
    api_key: Optional[str] = None

    def __post_init__(self):
        validate_lcd_url(self.base_url)
        if not self.chain_id:
            raise ValueError("chain_id must not be empty")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.retry_count < 0:
            raise ValueError("retry_count must not be negative")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        object.__setattr__(self, "address_scheme", AddressScheme(self.address_scheme))
        if self.address_scheme is AddressScheme.LEGACY_HEX:
            logger.warning(
                "Legacy hex address derivation selected; these addresses "
                "are not recognised by the live network"
            )

    @classmethod
    def from_network(
        cls,
        network: str = DEFAULT_NETWORK,
        base_url: Optional[str] = None,
        **overrides: Any
    ) -> "ChainConfig":
        """
        Build a configuration from the packaged network table.

        Args:
            network: Network name ("mainnet" or "testnet")
            base_url: Optional LCD URL override
            **overrides: Any other ChainConfig field

        Returns:
            ChainConfig instance
        """
        settings = NetworkConfig.get_network(network)
        values: Dict[str, Any] = {
            "base_url": NetworkConfig.get_lcd_url(network, override=base_url),
            "chain_id": settings["chainId"],
            "bech32_prefix": settings.get("bech32Prefix", "secret"),
            "fee_denom": settings.get("feeDenom", "uscrt"),
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(cls) -> "ChainConfig":
        """
        Build a configuration from SCRT_* environment variables.

        SCRT_NETWORK selects the base network; SCRT_LCD_URL, SCRT_CHAIN_ID,
        SCRT_TIMEOUT and SCRT_API_KEY override individual settings.
        """
        overrides: Dict[str, Any] = {}
        if os.environ.get("SCRT_CHAIN_ID"):
            overrides["chain_id"] = os.environ["SCRT_CHAIN_ID"]
        if os.environ.get("SCRT_TIMEOUT"):
            overrides["timeout"] = int(os.environ["SCRT_TIMEOUT"])
        if os.environ.get("SCRT_API_KEY"):
            overrides["api_key"] = os.environ["SCRT_API_KEY"]
        return cls.from_network(
            os.environ.get("SCRT_NETWORK", DEFAULT_NETWORK),
            base_url=os.environ.get("SCRT_LCD_URL"),
            **overrides
        )

    def with_overrides(self, **changes: Any) -> "ChainConfig":
        """Return a copy with some fields replaced."""
        return replace(self, **changes)
