"""
Scheduling and reconciliation core.
Pure computation over in-memory snapshots: no database, no clock, no HTTP.
"""
