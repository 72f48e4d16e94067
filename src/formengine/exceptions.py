# src/formengine/exceptions.py


class FormEngineError(Exception):
    """Base class for all errors raised by the form engine."""


class DocumentLoadError(FormEngineError):
    """Raised when an HTML document cannot be read or parsed."""


class EngineConstructionError(FormEngineError):
    """Raised when an engine implementation cannot be built for a document."""


class CollaboratorMissingError(FormEngineError):
    """Raised when a required collaborator (document, model, validator) is absent."""


class FormNotFoundError(FormEngineError):
    """Raised when an operation names a form id that is not in the current snapshot."""

    def __init__(self, form_id: str):
        super().__init__(f"Form not found: {form_id}")
        self.form_id = form_id
