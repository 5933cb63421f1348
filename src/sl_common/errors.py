"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Session
  3xxx: Stake
  4xxx: Manual staker
  9xxx: System

Validation errors are raised before any state mutation. State errors mean the
requested transition is not allowed from the current status and is never
coerced into a nearby valid one.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired token", 401)


# --- 2xxx: Session ---

class SessionNotFoundError(AppError):
    def __init__(self, session_id: str) -> None:
        super().__init__(2001, f"Session not found: {session_id}", 404)


class NotSessionOwnerError(AppError):
    def __init__(self, session_id: str) -> None:
        super().__init__(2002, f"Session {session_id} belongs to another player", 403)


class InvalidAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2003, f"Invalid amount: {detail}", 422)


class MissingGameError(AppError):
    def __init__(self) -> None:
        super().__init__(2004, "A game must be selected before the session starts", 422)


class UninitializedSessionError(AppError):
    def __init__(self, session_id: str) -> None:
        super().__init__(2005, f"Session {session_id} has no valid buy-in yet", 409)


class InvalidTransitionError(AppError):
    def __init__(self, entity: str, current: str, action: str) -> None:
        super().__init__(
            2006, f"Cannot {action} {entity} in status {current}", 409
        )


class EventOutOfOrderError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2007, f"Chip update out of order: {detail}", 422)


class DuplicateEventError(AppError):
    def __init__(self, event_id: str) -> None:
        super().__init__(2008, f"Duplicate chip update id: {event_id}", 409)


class InvalidTimestampError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2009, f"Invalid chip update timestamp: {detail}", 422)


# --- 3xxx: Stake ---

class StakeNotFoundError(AppError):
    def __init__(self, stake_id: str) -> None:
        super().__init__(3001, f"Stake not found: {stake_id}", 404)


class InvalidPercentageError(AppError):
    def __init__(self, percentage_bps: int) -> None:
        super().__init__(
            3002,
            f"Stake percentage must be in (0, 10000] bps, got {percentage_bps}",
            422,
        )


class InvalidMarkupError(AppError):
    def __init__(self, markup_bps: int) -> None:
        super().__init__(
            3003, f"Markup must be at least 10000 bps (1.00x), got {markup_bps}", 422
        )


class MissingStakerError(AppError):
    def __init__(self) -> None:
        super().__init__(3004, "Either an app user or a manual staker is required", 422)


class AmbiguousStakerError(AppError):
    def __init__(self) -> None:
        super().__init__(
            3005, "A stake references an app user or a manual staker, not both", 422
        )


class DuplicateStakeError(AppError):
    def __init__(self, session_id: str, staker_id: str) -> None:
        super().__init__(
            3006,
            f"Staker {staker_id} already has an open stake on session {session_id}",
            409,
        )


class StakeAlreadySettledError(AppError):
    def __init__(self, stake_id: str) -> None:
        super().__init__(3007, f"Stake {stake_id} is settled; reopen it first", 409)


class NotStakeParticipantError(AppError):
    def __init__(self, stake_id: str, detail: str = "not a party to this stake") -> None:
        super().__init__(3008, f"Stake {stake_id}: {detail}", 403)


# --- 4xxx: Manual staker ---

class ManualStakerNotFoundError(AppError):
    def __init__(self, profile_id: str) -> None:
        super().__init__(4001, f"Manual staker not found: {profile_id}", 404)


# --- 9xxx: System ---

class PersistenceError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9001, f"Persistence failure: {detail}", 503)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
