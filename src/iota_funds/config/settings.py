"""Application settings loaded from the command line, environment and ``.env``.

Configuration is resolved from (highest priority first):
1. Command line flags (passed as init kwargs by the tools)
2. Environment variables (``NODE_URL``, ``PRIVATE_KEYS``,
   ``RECIPIENT_ADDRESS``; tuning knobs under ``IOTAFUNDS_<SECTION>__``)
3. A local ``.env`` file, when present
4. Defaults defined here
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ENV_FILE = ".env"

# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class NodeConfig(BaseSettings):
    """Node client settings."""

    model_config = SettingsConfigDict(
        env_prefix="IOTAFUNDS_NODE__",
        env_file=DEFAULT_ENV_FILE,
        case_sensitive=False,
        extra="ignore",
    )

    timeout: float = 30.0
    confirmation_interval: float = Field(
        default=5.0,
        description="Seconds between two block inclusion polls",
    )
    confirmation_max_attempts: int = Field(
        default=40,
        description="Maximum number of block inclusion polls",
    )
    max_time_skew: int = Field(
        default=300,
        description="Allowed seconds between local time and the node's latest milestone",
    )


class PriceConfig(BaseSettings):
    """Fiat price lookup settings."""

    model_config = SettingsConfigDict(
        env_prefix="IOTAFUNDS_PRICE__",
        env_file=DEFAULT_ENV_FILE,
        case_sensitive=False,
        extra="ignore",
    )

    api_url: str = "https://api.coingecko.com/api/v3/simple/price"
    asset_id: str = "iota"
    currency: str = Field(
        default="eur",
        description="Currency the timed balance is valued in",
    )
    precision: int = 18
    timeout: float = 30.0

    @field_validator("currency")
    @classmethod
    def _lower_currency(cls, value: str) -> str:
        return value.strip().lower()


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


class AppConfig(BaseSettings):
    """Top-level configuration shared by ``send-all`` and ``timed-balance``.

    The ledger related fields carry no prefix so that the same variables
    (``NODE_URL``, ``PRIVATE_KEYS``, ``RECIPIENT_ADDRESS``) work in the
    environment and in ``.env``.
    """

    model_config = SettingsConfigDict(
        env_file=DEFAULT_ENV_FILE,
        case_sensitive=False,
        extra="ignore",
    )

    node_url: str = ""
    private_keys: str = Field(
        default="",
        description="Comma separated Base58 encoded Ed25519 private keys",
    )
    recipient_address: str = ""

    node: NodeConfig = Field(default_factory=NodeConfig)
    price: PriceConfig = Field(default_factory=PriceConfig)

    @property
    def keys(self) -> list[str]:
        """The private keys as a list, blanks dropped."""
        return [k.strip() for k in self.private_keys.split(",") if k.strip()]

    @classmethod
    def load(
        cls,
        env_file: str | None = DEFAULT_ENV_FILE,
        *,
        currency: str | None = None,
        **overrides: object,
    ) -> AppConfig:
        """Build the config reading *env_file*; ``None`` values in *overrides* are ignored.

        Raises:
            pydantic.ValidationError: If a value from any source is invalid.
        """
        values = {k: v for k, v in overrides.items() if v is not None}
        price_values = {"currency": currency} if currency is not None else {}
        return cls(
            _env_file=env_file,
            node=NodeConfig(_env_file=env_file),
            price=PriceConfig(_env_file=env_file, **price_values),
            **values,
        )
