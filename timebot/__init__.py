"""
Time Role Keeper — local-time role synchronization for Discord guilds.

Members holding a parent role receive a child role while their own clock
sits inside the configured daily window, and lose it outside of it.
"""

__version__ = "0.2.0"
