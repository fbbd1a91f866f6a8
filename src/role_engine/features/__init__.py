"""Feature packages exposed over the HTTP API."""
