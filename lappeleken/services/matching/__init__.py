"""Player identity matching between the live feed and the player pool."""
