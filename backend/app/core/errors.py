class LendingError(Exception):
    """Base for every failure a lending operation reports to its caller.

    `code` is a stable snake_case identifier, returned as the HTTP `detail`.
    """

    code = "lending_error"

    def __init__(self, code: str | None = None, message: str | None = None):
        if code is not None:
            self.code = code
        super().__init__(message or self.code)


class Unauthorized(LendingError):
    code = "unauthorized"


class NotFound(LendingError):
    code = "not_found"


class LoanNotFound(NotFound):
    code = "loan_not_found"


class AlreadyFinalized(LendingError):
    code = "loan_already_finalized"


class PreconditionFailed(LendingError):
    code = "precondition_failed"


class IneligibleBorrower(PreconditionFailed):
    code = "borrower_ineligible"


class ScoreUnavailable(PreconditionFailed):
    code = "score_oracle_unavailable"


class AssetTransferFailed(PreconditionFailed):
    code = "asset_transfer_failed"


class InvalidLock(PreconditionFailed):
    code = "invalid_lock"
