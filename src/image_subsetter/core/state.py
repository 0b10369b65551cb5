"""Process-wide server state, constructed once at startup and passed explicitly."""

from dataclasses import dataclass, field

from ..models.config import ServerSettings
from .dataset_cache import ActiveDataset


@dataclass
class ServerState:
    """Immutable settings plus the one mutable slot that survives across requests."""

    settings: ServerSettings
    active: ActiveDataset = field(default_factory=ActiveDataset)

    @property
    def mode(self):
        return self.settings.mode
