class WebRagError(RuntimeError):
    pass


class IndexUnavailable(WebRagError):
    """The vector index could not be listed, created or loaded."""


class StorageWriteFailed(WebRagError):
    """An upsert or delete against the vector index failed."""


class CompletionFailed(WebRagError):
    """The text-completion service failed or answered with a non-success status."""


class ExtractionFailed(WebRagError):
    """A web page could not be fetched or produced no readable text."""
