"""Exceptions raised by the form logic engine."""


class FormStateError(Exception):
    """Base class for form engine errors."""


class SchemaError(FormStateError, ValueError):
    """A schema, path or registry table is malformed.

    Raised while the schema is being constructed, never during evaluation.
    """


class SubscriptionError(FormStateError, RuntimeError):
    """A field's watch set could not be subscribed to the value store."""

    def __init__(self, field_path: str, message: str):
        self.field_path = field_path
        self.message = message
        super().__init__(f"Cannot watch dependencies of '{field_path}': {message}")
