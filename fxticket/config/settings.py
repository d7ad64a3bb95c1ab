"""User settings loaded from ``~/.config/fxticket/config.toml``.

Example file::

    debounce_ms = 300
    server_validation_delay_ms = 300
    log_level = "INFO"

    [preferences]
    default_account_name = "Acct"
    default_account_id = 1
    default_liquidity_pool = "POOL1"
    default_order_type = "FLOAT"
"""

from pathlib import Path
from typing import Optional, Union

import toml
from pydantic import BaseModel, Field, ValidationError

from fxticket.config.constants import AMOUNT_CONFIG, VALIDATION_CONFIG
from fxticket.models.order import Account
from fxticket.models.refdata import UserPreferences

CONFIG_DIR = Path.home() / ".config" / "fxticket"
CONFIG_PATH = CONFIG_DIR / "config.toml"


class PreferenceSettings(BaseModel):
    """The ``[preferences]`` table."""

    default_account_name: Optional[str] = None
    default_account_id: Optional[int] = None
    default_liquidity_pool: Optional[str] = None
    default_order_type: Optional[str] = None

    model_config = {"frozen": True, "extra": "forbid"}


class TicketSettings(BaseModel):
    """Runtime settings for the ticket and the paper server."""

    debounce_ms: int = Field(default=VALIDATION_CONFIG["DEBOUNCE_MS"], ge=0)
    server_validation_delay_ms: int = Field(
        default=VALIDATION_CONFIG["SERVER_VALIDATION_DELAY_MS"], ge=0,
        description="Simulated round trip of the paper server",
    )
    db_path: Path = Field(default=CONFIG_DIR / "orders.db", description="Paper order database")
    log_level: str = Field(default="WARNING")
    large_trade_threshold: float = Field(
        default=AMOUNT_CONFIG["LARGE_TRADE_THRESHOLD"], gt=0,
        description="Amounts above this get a soft warning",
    )
    preferences: PreferenceSettings = Field(default_factory=PreferenceSettings)

    model_config = {"frozen": True, "extra": "forbid"}

    def user_preferences(self) -> UserPreferences:
        """Build the preference layer payload from the ``[preferences]`` table."""
        prefs = self.preferences
        account = None
        if prefs.default_account_name and prefs.default_account_id is not None:
            account = Account(name=prefs.default_account_name, sds_id=prefs.default_account_id)
        return UserPreferences(
            default_account=account,
            default_liquidity_pool=prefs.default_liquidity_pool,
            default_order_type=prefs.default_order_type,
        )


def load_settings(path: Optional[Union[str, Path]] = None) -> TicketSettings:
    """Load settings from a TOML file.

    Args:
        path: Settings file. Defaults to ``~/.config/fxticket/config.toml``.

    Returns:
        Parsed settings; defaults when the file does not exist.

    Raises:
        ValueError: If the file is not valid TOML or has invalid values.
    """
    config_path = Path(path).expanduser() if path else CONFIG_PATH
    if not config_path.exists():
        return TicketSettings()

    try:
        data = toml.load(config_path)
    except toml.TomlDecodeError as e:
        raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    try:
        return TicketSettings.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first["loc"])
        raise ValueError(f"Invalid setting '{key}' in {config_path}: {first['msg']}") from e
