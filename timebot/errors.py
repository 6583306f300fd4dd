"""
Time Role Keeper errors.

Only ConfigLoadError is fatal. Everything raised during a reconciliation
tick is caught by the loop, logged, and healed on the next tick.
"""


class TimeBotError(Exception):
    """Base class for all Time Role Keeper errors."""


class ConfigLoadError(TimeBotError):
    """The durable configuration could not be read or parsed."""

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load configuration from {path}: {reason}")


class InvalidTimezone(TimeBotError):
    """A timezone name is not in the tz database."""

    def __init__(self, tz_name: str, reason: str = ""):
        self.tz_name = tz_name
        self.reason = reason or "unknown timezone"
        super().__init__(f"Failed to parse the timezone {tz_name!r}: {self.reason}")


class GroupUnavailable(TimeBotError):
    """The guild is not resolvable this tick."""

    def __init__(self, group_id: int, reason: str = "not in cache"):
        self.group_id = group_id
        self.reason = reason
        super().__init__(f"Guild {group_id} is not available: {reason}")


class MemberUnresolvable(TimeBotError):
    """A tracked user could not be resolved inside the guild."""

    def __init__(self, user_id: int, reason: str = "not a member"):
        self.user_id = user_id
        self.reason = reason
        super().__init__(f"Failed to get member {user_id}: {reason}")


class RoleMutationFailure(TimeBotError):
    """The directory rejected a role add or remove."""

    def __init__(self, action: str, user_id: int, role_id: int, reason: str):
        self.action = action
        self.user_id = user_id
        self.role_id = role_id
        self.reason = reason
        super().__init__(f"Failed to {action} role {role_id} for {user_id}: {reason}")


class PersistenceFailure(TimeBotError):
    """Saving the configuration to disk failed."""

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to save configuration to {path}: {reason}")
