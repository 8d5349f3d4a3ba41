"""
Services for the settlement engine.

- settlement: pure balance-transfer calculator
- event_ingestion: live event dedup, resolution and routing
- game_session: orchestrator owning one game's state
- football_data: match data collaborator (football-data.org and sample data)
- live_monitor: per-session polling jobs
- persistence: saved game store
- entitlements: live feature gate
"""
