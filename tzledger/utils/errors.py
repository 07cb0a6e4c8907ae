# tzledger/utils/errors.py


class TzLedgerError(RuntimeError):
    """Base class for errors raised by tzledger."""


class DecodeError(TzLedgerError):
    """
    A single transaction could not be ABI-decoded.
    Handled locally: logged and the transaction dropped.
    """


class DataIntegrityError(TzLedgerError):
    """
    A deposit has no registration for its actor.
    Only raised when reconciliation runs in strict mode.
    """


class StoredDataError(TzLedgerError):
    """
    Stored data or an API payload could not be parsed. Aborts the run.
    """


class EtherscanError(TzLedgerError):
    """
    Etherscan returned a failing status after retries, or a payload of the wrong shape.
    """

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class PipelineAbort(TzLedgerError):
    """
    Raised by a step to stop the pipeline cleanly.
    """
