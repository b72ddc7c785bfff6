from honeypot.repositories.honeypot_config_repo import HoneypotConfigRepository
from honeypot.repositories.honeypot_events_repo import HoneypotEventsRepository

__all__ = [
    "HoneypotConfigRepository",
    "HoneypotEventsRepository",
]
