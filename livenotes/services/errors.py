class CollaboratorError(RuntimeError):
    """A summarization, answer, speech-synthesis or playback call failed."""


class ConfigError(ValueError):
    pass
