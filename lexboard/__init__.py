"""
Lexboard - legal case management API
====================================

Cases, clients, tasks and asynchronous report generation for advocates and
paralegals, with JWT authentication and role-scoped visibility.
"""

__version__ = "1.0.0"
