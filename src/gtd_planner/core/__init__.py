"""
Core of the task manager.

Components:
- models.py: entities (Task, Project, Area, Tag) and enums
- engine.py: GTDStore, the single writer of all collections
- views.py: pure view resolution (which tasks show where, in which order)
- ports.py: persistence protocol consumed by the store's wiring
- state.py: AppState shared with front ends
"""
