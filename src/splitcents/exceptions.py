"""Custom exceptions for splitcents."""


class SplitCentsError(Exception):
    """Base exception for all splitcents errors."""

    pass


class ConfigurationError(SplitCentsError):
    """Raised when configuration is invalid or missing."""

    pass


# ============================================================================
# Error families
# ============================================================================


class InputError(SplitCentsError):
    """Malformed or missing split parameters.

    Recoverable: the message is meant to be shown to the end user verbatim.
    """

    pass


class ConservationError(SplitCentsError):
    """Cents were created or lost while allocating. Always a logic defect."""

    pass


class StateInvariantError(SplitCentsError):
    """Aggregated state is inconsistent (e.g. balances do not net to zero)."""

    pass


class AllocationError(SplitCentsError):
    """Base class for errors raised by the split allocator."""

    pass


# ============================================================================
# Allocator errors
# ============================================================================


class EmptyParticipantsError(InputError, AllocationError):
    """Raised when an allocation has no participants."""

    def __init__(self, message: str | None = None):
        super().__init__(message or "At least one participant is required")


class NonPositiveTotalError(InputError, AllocationError):
    """Raised when the total to allocate is zero or negative."""

    def __init__(self, total_cents: int, message: str | None = None):
        self.total_cents = total_cents
        super().__init__(
            message or f"Total amount must be positive (got {total_cents} cents)"
        )


class PolicyMismatchError(InputError, AllocationError):
    """Raised when a policy lacks a per-user parameter (or names a stranger)."""

    def __init__(self, user_id: str, message: str):
        self.user_id = user_id
        super().__init__(message)


class UnreconciledRoundingError(ConservationError, AllocationError):
    """Raised when the repair pass cannot force exact cent conservation."""

    def __init__(self, expected_cents: int, actual_cents: int):
        self.expected_cents = expected_cents
        self.actual_cents = actual_cents
        super().__init__(
            f"Allocation does not conserve cents: expected {expected_cents}, "
            f"got {actual_cents} (residual {expected_cents - actual_cents})"
        )


class DuplicateParticipantError(InputError):
    """Raised when the same participant is listed more than once."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Participant {user_id} is listed more than once")


class InvalidSplitParameterError(InputError):
    """Raised when a percentage, share or amount is out of range."""

    pass


class ExactAmountMismatchError(InputError):
    """Raised when exact amounts don't add up to the expense total."""

    def __init__(self, total_cents: int, split_cents: int):
        self.total_cents = total_cents
        self.split_cents = split_cents
        super().__init__(
            f"Split amounts ({split_cents}) don't match expense total ({total_cents})"
        )


class UnknownSplitTypeError(InputError):
    """Raised when a split type name is not recognised."""

    def __init__(self, split_type: str):
        self.split_type = split_type
        super().__init__(f"Invalid split type: {split_type}")


class SplitValidationError(InputError):
    """Raised when pre-flight split validation reports problems."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class LedgerFormatError(InputError):
    """Raised when a ledger file cannot be parsed."""

    pass


# ============================================================================
# State invariant errors
# ============================================================================


class UnbalancedLedgerError(StateInvariantError):
    """Raised when aggregated balances don't sum to zero."""

    def __init__(self, residual_cents: int, message: str | None = None):
        self.residual_cents = residual_cents
        super().__init__(
            message
            or f"Balances do not net to zero (residual {residual_cents} cents)"
        )


class ResidualBalanceError(StateInvariantError):
    """Raised when the planner is left with unmatched balance."""

    def __init__(self, residuals: dict[str, int]):
        self.residuals = residuals
        detail = ", ".join(f"{user}: {cents}" for user, cents in residuals.items())
        super().__init__(f"Unsettled residual balances after planning: {detail}")


class InvalidSettlementPlanError(StateInvariantError):
    """Raised when a settlement plan fails post-condition checks."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))
