"""Friend graph error classes.

Every failure the engine reports to its callers is one of these exceptions.
Business rule violations leave the store untouched.
"""

from __future__ import annotations


class FriendGraphError(Exception):
    """Base exception for friend graph errors."""

    pass


class BusinessRuleError(FriendGraphError):
    """Raised when a request breaks a graph rule. Expected and recoverable."""

    pass


class UserNotFoundError(BusinessRuleError):
    """Raised when a user id does not exist in the store."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class DuplicateUsernameError(BusinessRuleError):
    """Raised when a username is already taken by another user."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username '{username}' already exists")


class SelfLinkError(BusinessRuleError):
    """Raised when a user is asked to befriend themselves."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} cannot be friends with themselves")


class AlreadyLinkedError(BusinessRuleError):
    """Raised when linking two users who are already friends."""

    def __init__(self, user_id: str, friend_id: str):
        self.user_id = user_id
        self.friend_id = friend_id
        super().__init__(f"Users {user_id} and {friend_id} are already friends")


class NotLinkedError(BusinessRuleError):
    """Raised when unlinking two users who are not friends."""

    def __init__(self, user_id: str, friend_id: str):
        self.user_id = user_id
        self.friend_id = friend_id
        super().__init__(f"Users {user_id} and {friend_id} are not friends")


class HasFriendsError(BusinessRuleError):
    """Raised when deleting a user that still has friendships."""

    def __init__(self, user_id: str, friend_count: int):
        self.user_id = user_id
        self.friend_count = friend_count
        super().__init__(
            f"Cannot delete user {user_id} with {friend_count} existing friendship(s). "
            "Please remove all friendships first."
        )


class HobbyNotFoundError(BusinessRuleError):
    """Raised when removing a hobby the user does not have."""

    def __init__(self, user_id: str, hobby: str):
        self.user_id = user_id
        self.hobby = hobby
        super().__init__(f"Hobby '{hobby}' not found for user {user_id}")


class StoreUnavailableError(FriendGraphError):
    """Raised when the persistence backend cannot be reached or rejects a write."""

    pass


class SymmetryViolationError(FriendGraphError):
    """Raised when the friendship relation is found asymmetric or reflexive."""

    pass
