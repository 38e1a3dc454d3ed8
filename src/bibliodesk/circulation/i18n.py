"""Message catalogs for user-facing text.

Keys are dotted paths. Lookups fall back to English, then to the key itself.
"""

from typing import Optional

DEFAULT_LANGUAGE = "en"

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "entities.loan.validation.bookOutOfStock": "This book is out of stock.",
        "entities.loan.validation.returnDateRequired": "Return date is required.",
        "entities.loan.validation.closedLoansSelectedForEmail": (
            "Emails can't be sent for closed loans."
        ),
        "entities.loan.validation.loanAlreadyClosed": "This loan is already closed.",
        "importer.errors.importHashRequired": "Import hash is required.",
        "importer.errors.importHashExistent": "Data has already been imported.",
        "errors.notFound": "{entity} not found: {id}",
        "emails.loanOverdue.subject": "Overdue: please return {book}",
        "emails.loanOverdue.body": (
            "Hello {member},\n\n"
            "The book \"{book}\" was due on {due_date} and has not been returned yet. "
            "Please return it as soon as possible.\n"
        ),
        "emails.loanInProgress.subject": "Reminder: {book} is due on {due_date}",
        "emails.loanInProgress.body": (
            "Hello {member},\n\n"
            "This is a reminder that the book \"{book}\" is due on {due_date}.\n"
        ),
    },
    "es": {
        "entities.loan.validation.bookOutOfStock": "Este libro está agotado.",
        "entities.loan.validation.returnDateRequired": (
            "La fecha de devolución es obligatoria."
        ),
        "entities.loan.validation.closedLoansSelectedForEmail": (
            "No se pueden enviar correos para préstamos cerrados."
        ),
        "entities.loan.validation.loanAlreadyClosed": "Este préstamo ya está cerrado.",
        "importer.errors.importHashRequired": "El hash de importación es obligatorio.",
        "importer.errors.importHashExistent": "Los datos ya han sido importados.",
        "errors.notFound": "{entity} no encontrado: {id}",
        "emails.loanOverdue.subject": "Atrasado: por favor devuelva {book}",
        "emails.loanOverdue.body": (
            "Hola {member},\n\n"
            "El libro \"{book}\" vencía el {due_date} y aún no ha sido devuelto. "
            "Por favor devuélvalo lo antes posible.\n"
        ),
        "emails.loanInProgress.subject": "Recordatorio: {book} vence el {due_date}",
        "emails.loanInProgress.body": (
            "Hola {member},\n\n"
            "Le recordamos que el libro \"{book}\" vence el {due_date}.\n"
        ),
    },
}


def translate(language: Optional[str], key: str, **params) -> str:
    """Translate a message key.

    Args:
        language: Language code (e.g. "en", "es"); None means default
        key: Dotted message key
        **params: Values interpolated into the message

    Returns:
        Localized message, or the key when no catalog has it
    """
    catalog = MESSAGES.get(language or DEFAULT_LANGUAGE, {})
    message = catalog.get(key) or MESSAGES[DEFAULT_LANGUAGE].get(key)
    if message is None:
        return key
    return message.format(**params) if params else message
