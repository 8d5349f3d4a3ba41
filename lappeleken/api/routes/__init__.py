"""HTTP routes for sessions, matches, saved games and entitlements."""
