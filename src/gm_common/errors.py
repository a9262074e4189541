"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Account (ledger)
  3xxx: Catalog
  4xxx: Deal
  5xxx: Import
  6xxx: Chat
  9xxx: System

Categories map to HTTP status: validation 400, not found 404, forbidden 403,
conflict 409, insufficient funds 400, upstream fetch 502, internal 500.
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


# --- 1xxx: Auth/User ---

class NicknameExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Nickname already taken", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid nickname or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Admin privileges required", 403)


class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1007, f"User not found: {user_id}", 404)


# --- 2xxx: Account ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required}, available {available}",
            400,
        )


class AccountNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Account not found for user {user_id}", 404)


# --- 3xxx: Catalog ---

class ItemNotFoundError(AppError):
    def __init__(self, item_id: str) -> None:
        super().__init__(3001, f"Item not found: {item_id}", 404)


class DuplicateItemError(AppError):
    def __init__(self, dedup_key: str) -> None:
        super().__init__(3002, f"A similar item already exists: {dedup_key}", 409)


class ItemNotAvailableError(AppError):
    def __init__(self, item_id: str, status: str) -> None:
        super().__init__(3003, f"Item {item_id} is not available (status={status})", 409)


class ItemHasDealsError(AppError):
    def __init__(self, item_id: str) -> None:
        super().__init__(3004, f"Item {item_id} has deals and cannot be deleted", 409)


# --- 4xxx: Deal ---

class DealNotFoundError(AppError):
    def __init__(self, deal_id: str) -> None:
        super().__init__(4001, f"Deal not found: {deal_id}", 404)


class DealStateConflictError(AppError):
    def __init__(self, deal_id: str, status: str, action: str) -> None:
        super().__init__(
            4002, f"Deal {deal_id} in status {status} does not allow {action}", 409
        )


class ForbiddenError(AppError):
    def __init__(self, detail: str = "Not allowed") -> None:
        super().__init__(4003, detail, 403)


class SelfPurchaseError(AppError):
    def __init__(self) -> None:
        super().__init__(4004, "Cannot buy your own item", 400)


# --- 5xxx: Import ---

class UpstreamFetchError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(5001, f"Upstream fetch failed: {detail}", 502)


class UnknownImportSourceError(AppError):
    def __init__(self, source: str) -> None:
        super().__init__(5002, f"Unknown import source: {source}", 404)


# --- 6xxx: Chat ---

class ChatNotFoundError(AppError):
    def __init__(self, chat_id: str) -> None:
        super().__init__(6001, f"Chat not found: {chat_id}", 404)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class InvalidRequestError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, detail, 400)
