"""Building blocks of the MPD monitor service."""
