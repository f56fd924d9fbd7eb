class GenEdError(Exception):
    """Base class for analysis errors."""


class CompletionError(GenEdError):
    """A single completion call failed or returned unusable output."""


class MissingCredentialError(CompletionError):
    pass


class SemanticMatchError(GenEdError):
    """The AI matching path failed as a whole; callers fall back to keywords."""


class DocumentError(GenEdError):
    """The uploaded document could not be turned into syllabus text."""
