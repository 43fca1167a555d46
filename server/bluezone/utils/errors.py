class BlueZoneError(Exception):
    """Base class for errors the API layer maps to an HTTP response."""

    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotAParticipant(BlueZoneError):

    status_code = 403
    default_message = "Not part of conversation"


class InvalidRecipient(BlueZoneError):

    status_code = 400
    default_message = "Cannot message yourself"


class InvalidContent(BlueZoneError):

    status_code = 400
    default_message = "Content cannot be empty"


class SubjectNotFound(BlueZoneError):

    status_code = 404
    default_message = "Subject not found"


class ConversationNotFound(BlueZoneError):

    status_code = 404
    default_message = "Conversation not found"


class NotificationNotFound(BlueZoneError):

    status_code = 404
    default_message = "Notification not found"


class UserNotFound(BlueZoneError):

    status_code = 404
    default_message = "User not found"


class PermissionDenied(BlueZoneError):

    status_code = 403
    default_message = "Not authorized"
