from watchparty.errors import WatchPartyError
from watchparty.party import WatchParty

__all__ = ["WatchParty", "WatchPartyError"]
