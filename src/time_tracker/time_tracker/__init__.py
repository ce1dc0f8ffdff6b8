"""Time Tracker package.

Organized by feature modules (users, auth, activity, sessions) with SOLID
service/repository layers. Transport adapters call into ``operations.TrackerOperations``.
"""
