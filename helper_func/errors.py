class TransferError(Exception):
    """A queued job could not be completed; the queue moves past it."""
