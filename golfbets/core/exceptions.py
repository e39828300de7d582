"""
golfbets Exception Hierarchy

All exceptions inherit from GolfBetsError for easy catching.

Incomplete score data is NOT an exception. Evaluators report it as a
pending result and the settlement run continues.
"""


class GolfBetsError(Exception):
    """Base exception for all golfbets errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(GolfBetsError):
    """Raised when a record fails validation at construction"""
    pass


class InvalidConfiguration(GolfBetsError):
    """Raised before any evaluation runs when a bet or match is malformed"""
    pass


class StaleSnapshot(GolfBetsError):
    """Raised when a score read during settlement has since been superseded"""
    pass


class VersionConflict(StaleSnapshot):
    """Raised when a score write supplies a version other than the current one"""
    pass


class InvariantViolation(GolfBetsError):
    """Raised when a settlement run would produce an inconsistent ledger"""
    pass


class AuditLogError(GolfBetsError):
    """Raised when audit log operations fail"""
    pass
