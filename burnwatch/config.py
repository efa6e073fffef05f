"""Configuration loader for burnwatch.

Loads config/burnwatch.yaml (if present), applies environment overrides
(.env is loaded by the runner), and validates everything into a
``Settings`` model. Any problem is raised as ConfigError before the poll
loop starts.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from solders.pubkey import Pubkey

WORKSPACE = Path(__file__).resolve().parent.parent
CONFIG_DIR = WORKSPACE / "config"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "burnwatch.yaml"

INCINERATOR = "1nc1nerator11111111111111111111111111111111"
SYSTEM_ADDRESS = "11111111111111111111111111111111"


class ConfigError(Exception):
    """Missing or invalid configuration. Fatal at startup."""


def _check_address(value: str) -> str:
    value = value.strip()
    try:
        Pubkey.from_string(value)
    except ValueError as e:
        raise ValueError(f"not a valid Solana address: {value!r}") from e
    return value


class TokenSettings(BaseModel):
    """The tracked mint. Fixed for the process lifetime."""

    mint: str
    symbol: str = "TOKEN"
    decimals: int = 9
    total_supply: float = Field(default=100_000_000, gt=0)

    @field_validator("mint")
    @classmethod
    def check_mint(cls, v: str) -> str:
        return _check_address(v)


class PoolSettings(BaseModel):
    primary: str
    secondary: list[str] = Field(default_factory=list)

    @field_validator("primary")
    @classmethod
    def check_primary(cls, v: str) -> str:
        return _check_address(v)

    @field_validator("secondary")
    @classmethod
    def check_secondary(cls, v: list[str]) -> list[str]:
        return [_check_address(a) for a in v]

    @property
    def all(self) -> list[str]:
        return [self.primary, *self.secondary]


class ClassifierSettings(BaseModel):
    """Balance-delta heuristics. The tolerances are empirical."""

    burn_sinks: list[str] = Field(default_factory=lambda: [INCINERATOR, SYSTEM_ADDRESS])
    burn_log_markers: list[str] = Field(default_factory=lambda: ["Instruction: Burn", "BurnChecked"])
    match_tolerance: float = Field(default=0.001, ge=0)
    pool_absorption_ratio: float = Field(default=0.9, ge=0, le=1)
    dust_floor: float = Field(default=0.01, ge=0)
    ops_wallets: list[str] = Field(default_factory=list)
    known_vaults: list[str] = Field(default_factory=list)
    vault_heuristic: Literal["off_curve", "length", "none"] = "off_curve"

    @field_validator("burn_sinks", "ops_wallets", "known_vaults")
    @classmethod
    def check_addresses(cls, v: list[str]) -> list[str]:
        return [_check_address(a) for a in v]


class AlertSettings(BaseModel):
    min_buy_usd: float = 25.0
    min_arb_usd: float = 25.0
    arb_balance_threshold: float = 500.0
    burn_image_url: str = "https://voidsolana.com/burn.jpg"
    arb_image_url: str = "https://voidsolana.com/arbitrage.jpg"
    rank_image_url: str = "https://voidsolana.com/ranks/rank{index}.png"
    rank_image_range: tuple[int, int] = (2, 45)
    chart_url: str = "https://dexscreener.com/solana"
    website_url: str = "https://voidsolana.com"
    twitter_url: str = ""
    explorer_url: str = "https://solscan.io"

    @field_validator("rank_image_range")
    @classmethod
    def check_range(cls, v: tuple[int, int]) -> tuple[int, int]:
        if v[1] < v[0]:
            raise ValueError("rank_image_range must be (start, end) with end >= start")
        return v


class TelegramSettings(BaseModel):
    bot_token: str = ""
    chat_id: str = ""
    send_interval_seconds: float = Field(default=2.0, ge=0)
    timeout_seconds: float = Field(default=20.0, gt=0)
    commands: bool = True


class PollSettings(BaseModel):
    interval_seconds: float = Field(default=30.0, gt=0)
    page_limit: int = Field(default=10, ge=1, le=1000)
    backoff_initial_seconds: float = Field(default=1.0, gt=0)
    backoff_max_seconds: float = Field(default=60.0, gt=0)
    dedup_capacity: int = Field(default=2000, ge=1)


class RPCSettings(BaseModel):
    url: str = "https://api.mainnet-beta.solana.com"
    commitment: Literal["processed", "confirmed", "finalized"] = "confirmed"
    timeout_seconds: float = Field(default=15.0, gt=0)
    rate_limit: float = Field(default=5.0, gt=0)


class PriceSettings(BaseModel):
    cache_ttl_seconds: float = Field(default=30.0, ge=0)
    timeout_seconds: float = Field(default=10.0, gt=0)


class Settings(BaseModel):
    token: TokenSettings
    pools: PoolSettings
    classifier: ClassifierSettings = Field(default_factory=ClassifierSettings)
    alerts: AlertSettings = Field(default_factory=AlertSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    poll: PollSettings = Field(default_factory=PollSettings)
    rpc: RPCSettings = Field(default_factory=RPCSettings)
    price: PriceSettings = Field(default_factory=PriceSettings)
    dry_run: bool = False

    @model_validator(mode="after")
    def check_telegram(self) -> "Settings":
        if not self.dry_run:
            missing = [
                name
                for name, value in (
                    ("TELEGRAM_BOT_TOKEN", self.telegram.bot_token),
                    ("TELEGRAM_CHAT_ID", self.telegram.chat_id),
                )
                if not value
            ]
            if missing:
                raise ValueError(f"missing {', '.join(missing)} (or run with --dry-run)")
        return self


# env var -> (section, key, parser)
ENV_OVERRIDES: dict[str, tuple[str, str, Any]] = {
    "TOKEN_MINT": ("token", "mint", str),
    "TOKEN_SYMBOL": ("token", "symbol", str),
    "POOL_ID": ("pools", "primary", str),
    "EXTRA_POOLS": ("pools", "secondary", lambda v: _split(v)),
    "OPS_WALLETS": ("classifier", "ops_wallets", lambda v: _split(v)),
    "RPC_URL": ("rpc", "url", str),
    "TELEGRAM_BOT_TOKEN": ("telegram", "bot_token", str),
    "TELEGRAM_CHAT_ID": ("telegram", "chat_id", str),
    "MIN_BUY_USD": ("alerts", "min_buy_usd", float),
    "MIN_ARB_USD": ("alerts", "min_arb_usd", float),
    "ARB_BALANCE_THRESHOLD": ("alerts", "arb_balance_threshold", float),
    "BURN_IMAGE_URL": ("alerts", "burn_image_url", str),
    "ARB_IMAGE_URL": ("alerts", "arb_image_url", str),
    "CHART_URL": ("alerts", "chart_url", str),
    "WEBSITE_URL": ("alerts", "website_url", str),
    "POLL_INTERVAL_SECONDS": ("poll", "interval_seconds", float),
}


def _split(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def load_yaml_config(path: Path | None = None) -> dict[str, Any]:
    """Load the YAML config file. Missing file -> empty dict."""
    path = path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def apply_env_overrides(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Overlay environment values on the YAML mapping (env wins)."""
    for var, (section, key, parse) in ENV_OVERRIDES.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        try:
            value = parse(raw)
        except ValueError as e:
            raise ConfigError(f"{var}={raw!r} is not valid: {e}") from e
        data.setdefault(section, {})
        if not isinstance(data[section], dict):
            raise ConfigError(f"config section {section!r} must be a mapping")
        data[section][key] = value
    return data


def load_settings(
    path: Path | None = None,
    env: Mapping[str, str] | None = None,
    dry_run: bool = False,
) -> Settings:
    """Build validated Settings from YAML + environment.

    Raises:
        ConfigError: with one line per problem, e.g. ``token.mint: Field required``.
    """
    env = os.environ if env is None else env
    if path is None and env.get("BURNWATCH_CONFIG"):
        path = Path(env["BURNWATCH_CONFIG"])
    data = apply_env_overrides(load_yaml_config(path), env)
    if dry_run:
        data["dry_run"] = True

    try:
        return Settings(**data)
    except ValidationError as e:
        problems = []
        for err in e.errors():
            loc = ".".join(str(p) for p in err["loc"]) or "config"
            problems.append(f"{loc}: {err['msg']}")
        raise ConfigError("Invalid configuration:\n  " + "\n  ".join(problems)) from e
