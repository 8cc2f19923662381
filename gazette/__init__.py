"""
Gazette

Summarizes recently merged pull requests of subscribed GitHub repositories
into AI-generated markdown changelogs, with optional Jira context.
"""

__version__ = "0.1.0"
__author__ = "Gazette Team"
