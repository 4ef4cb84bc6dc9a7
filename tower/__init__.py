"""
Arithmetic Tower.

Game rules built on top of tower_engine:
- Components (persisted state, pydantic models)
- World (floor grids, navigation, encounters, respawns)
- Battle (arithmetic card combat)
- Progression (leveling, scores)
- Run (run state and screen flow)
- Save (slots, export/import)
"""
