"""Attendance core package.

Feature modules (geofence, sessions, biometric, reconciliation, payroll, ...)
each carry a domain model, a repository interface with a MySQL implementation,
and a service. Flask controllers stay thin on top.
"""
