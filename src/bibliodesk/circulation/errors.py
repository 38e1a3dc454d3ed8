"""Exceptions raised by the circulation services."""

from typing import Optional

from .i18n import translate


class CirculationError(Exception):
    """Base class for circulation errors."""

    pass


class ValidationError(CirculationError):
    """Business rule violation, localized and keyed by a message code."""

    def __init__(self, language: Optional[str], message_key: str):
        self.language = language
        self.message_key = message_key
        self.code = message_key.rsplit(".", 1)[-1]
        self.message = translate(language, message_key)
        super().__init__(self.message)


class NotFoundError(CirculationError):
    """A referenced record does not exist."""

    def __init__(self, entity: str, entity_id: str, language: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(translate(language, "errors.notFound", entity=entity, id=entity_id))


class NotificationDispatchError(CirculationError):
    """One or more notifications failed to send."""

    def __init__(self, failures: dict[str, BaseException]):
        self.failures = failures
        ids = ", ".join(sorted(failures))
        super().__init__(f"Failed to send {len(failures)} notification(s): {ids}")
