class LabContentError(Exception):
    """Base error for the content pipeline"""


class ContentStoreError(LabContentError):
    """A record file could not be interpreted as a publication"""


class OllamaUnavailableError(LabContentError):
    """The local Ollama server did not answer"""
