from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict, List
import yaml

from honeypot.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_RENAME_POOL: List[str] = [
    "honeypot",
    "free-nitro",
    "giveaways",
    "crypto-airdrop",
    "verify-here",
]


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches contents of ``./config/app_config.yml`` and exposes typed
    properties with defaults for every tunable the bot reads. Uses fcntl file
    locks for safe concurrent access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found, using defaults.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name, {})
        return section if isinstance(section, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns an empty dict when the file is missing or unreadable, in which
        case every property below falls back to its default.
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping (do not mutate)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # Bot identity and defaults
    # --------------------------
    @property
    def custom_emoji(self) -> str:
        """Emoji used to acknowledge a honeypot trigger."""
        return str(self._section("bot").get("custom_emoji") or "🍯")

    @property
    def default_locale(self) -> str:
        return str(self._section("bot").get("default_locale") or "en")

    @property
    def setup_channel_name(self) -> str:
        """Name of the channel looked up (or created) when joining a guild."""
        return str(self._section("bot").get("setup_channel_name") or "honeypot")

    @property
    def default_action(self) -> str:
        return str(self._section("bot").get("default_action") or "softban")

    # --------------------------
    # Timeouts
    # --------------------------
    @property
    def reaction_timeout(self) -> float:
        return float(self._section("timeouts").get("reaction_seconds", 1.5))

    @property
    def guild_info_timeout(self) -> float:
        return float(self._section("timeouts").get("guild_info_seconds", 1.5))

    # --------------------------
    # Moderation
    # --------------------------
    @property
    def delete_message_seconds(self) -> int:
        """Trailing message history window purged by a ban."""
        return int(self._section("moderation").get("delete_message_seconds", 3600))

    @property
    def softban_unban_delay(self) -> float:
        """Seconds to wait between the ban and the unban of a softban.

        The platform purges message history asynchronously after a ban; lifting
        the ban too early can leave messages behind. Calibrate per deployment.
        """
        return float(self._section("moderation").get("softban_unban_delay_seconds", 5.0))

    # --------------------------
    # Experiments
    # --------------------------
    @property
    def experiments_run_hour(self) -> int:
        """UTC hour at which the daily experiment run fires."""
        hour = int(self._section("experiments").get("daily_run_hour_utc", 0))
        return min(max(hour, 0), 23)

    @property
    def experiments_inter_guild_delay(self) -> float:
        return float(self._section("experiments").get("inter_guild_delay_seconds", 2.0))

    @property
    def rename_pool(self) -> List[str]:
        pool = self._section("experiments").get("rename_pool")
        if isinstance(pool, list) and pool:
            return [str(name) for name in pool]
        return list(DEFAULT_RENAME_POOL)

    @property
    def keep_alive_text(self) -> str:
        return str(self._section("experiments").get("keep_alive_text") or "🍯")

    # --------------------------
    # Caches and storage
    # --------------------------
    @property
    def message_cache_retention(self) -> float:
        return float(self._section("message_cache").get("retention_seconds", 3600))

    @property
    def message_cache_max_per_user(self) -> int:
        return int(self._section("message_cache").get("max_messages_per_user", 50))

    @property
    def database_path(self) -> Path:
        return Path(str(self._section("database").get("path") or "./data/honeypot.db")).resolve()


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
