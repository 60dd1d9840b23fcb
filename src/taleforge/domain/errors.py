class GameError(Exception):
    """Base for failures reported back to the caller as a structured result."""


class ActionValidationError(GameError):
    pass


class NotFoundError(GameError):
    pass


class SnapshotConflictError(GameError):
    pass


class PromptConflictError(GameError):
    pass


class CatalogExhaustedError(RuntimeError):
    """A catalog table is empty; this is a configuration fault, not a turn failure."""


class NarrativeUnavailableError(RuntimeError):
    pass
