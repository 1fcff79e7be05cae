class LendableError(Exception):
    status_code = 400


class NotFound(LendableError):
    status_code = 404


class TenantMismatch(LendableError):
    status_code = 403


class Unauthorized(LendableError):
    status_code = 403


class InsufficientAvailability(LendableError):
    status_code = 409


class BorrowerBlacklisted(LendableError):
    status_code = 403

    def __init__(self, message, blocked_until=None):
        super().__init__(message)
        self.blocked_until = blocked_until


class InvalidTransition(LendableError):
    status_code = 409


class AlreadyReturned(InvalidTransition): pass


class InvalidDueDate(LendableError):
    status_code = 422


class LoanLimitExceeded(LendableError):
    status_code = 409


class RenewalLimitExceeded(LendableError):
    status_code = 409


class BlacklistConflict(LendableError):
    status_code = 409


class DatabaseError(LendableError):
    status_code = 500
