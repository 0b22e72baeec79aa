"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskFilter) and tag (de)serialization
- task_query.py: filtered/searched/sorted list query builder
- task_mutator.py: insert validation and the update-field whitelist
- task_store.py: SQLite-backed storage
- task_sweeps.py: archival and reminder sweeps
- task_scheduler.py: periodic runner owning the sweeps
- task_api.py: payload-level helpers used by the HTTP routes
"""
